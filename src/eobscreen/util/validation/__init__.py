from .check import (
    check_number,
    check_choice
)
