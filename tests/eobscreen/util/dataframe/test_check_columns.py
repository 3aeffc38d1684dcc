import pytest
import pandas as pd

from eobscreen.errors import DataError
from eobscreen.util.dataframe.check_columns import check_columns

def test_check_columns():

    df = pd.DataFrame({"a": [1], "b": [2], "c": [3]})

    # No error
    check_columns(df, ["a", "c"])
    check_columns(df, [])

    with pytest.raises(DataError) as excinfo:
        check_columns(df, ["z", "a", "y"])

    msg = str(excinfo.value)
    assert "Not all required columns seen" in msg
    assert msg.index("z") < msg.index("y")
