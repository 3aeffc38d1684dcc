"""
Strategies for splitting condition labels into their component agents.

A label parser is any callable that takes a condition label and returns None
for a single agent or a (label_a, label_b) tuple for a two-agent combination.
It raises DataError when the label does not follow its grammar.
"""

from eobscreen.errors import DataError
from eobscreen.util import check_choice

import re

# Concentration/dose units recognized in dose tokens like "300nM" or "2.5Gy"
DOSE_UNITS = ("fM", "pM", "nM", "uM", "µM", "μM", "mM", "M",
              "pg/mL", "ng/mL", "ug/mL", "µg/mL", "μg/mL", "mg/mL",
              "ng/ml", "ug/ml", "µg/ml", "μg/ml", "mg/ml",
              "U/mL", "mg/kg", "Gy", "%")

_DOSE_TOKEN = re.compile(
    r"^(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?(" +
    "|".join(re.escape(u) for u in sorted(DOSE_UNITS, key=len, reverse=True)) +
    r")$"
)


def is_dose_token(token):
    """
    Return True if token looks like <amount><unit> (e.g. "300nM").
    """
    return _DOSE_TOKEN.match(token) is not None


def parse_dose_label(label):
    """
    Split a label written as "<amount><unit> <Agent> [<amount><unit> <Agent>]".

    Each component starts with a dose token followed by one or more agent-name
    tokens. A combination is split before its second dose token, so
    "300nM CX 2nM Dina" becomes ("300nM CX", "2nM Dina").

    Parameters
    ----------
    label : str
        condition label

    Returns
    -------
    None or tuple of str
        None for a single agent; (label_a, label_b) for a combination

    Raises
    ------
    DataError
        if the label does not start with a dose token, a dose token has no
        agent name after it, or there are more than two components
    """

    tokens = str(label).split()
    if len(tokens) == 0:
        raise DataError("Cannot parse an empty condition label.")

    starts = [i for i, t in enumerate(tokens) if is_dose_token(t)]
    if len(starts) == 0 or starts[0] != 0:
        raise DataError(
            f"Could not parse condition label '{label}'. Labels must look like "
            f"'<amount><unit> <Agent>' (e.g. '300nM CX') or two such "
            f"components (e.g. '300nM CX 2nM Dina')."
        )

    stops = starts[1:] + [len(tokens)]
    components = []
    for start, stop in zip(starts, stops):
        if stop - start < 2:
            raise DataError(
                f"Could not parse condition label '{label}'. Dose "
                f"'{tokens[start]}' is not followed by an agent name."
            )
        components.append(" ".join(tokens[start:stop]))

    if len(components) == 1:
        return None

    if len(components) > 2:
        raise DataError(
            f"Condition label '{label}' has {len(components)} agents. Only "
            f"single agents and pairs are supported."
        )

    return components[0], components[1]


def make_separator_parser(separator=" + "):
    """
    Build a parser for labels that join two agents with a literal separator,
    such as "CX-5461 + Dinaciclib".

    Parameters
    ----------
    separator : str, default=" + "
        string between the two agent labels. Whitespace around the separator
        is ignored, so " + " also splits "A+B".

    Returns
    -------
    callable
        label parser
    """

    if not isinstance(separator, str) or separator.strip() == "":
        raise DataError("separator must be a non-empty, non-whitespace string.")

    def parse_separated_label(label):

        parts = [" ".join(p.split()) for p in str(label).split(separator.strip())]
        if any(p == "" for p in parts):
            raise DataError(
                f"Could not parse condition label '{label}' with separator '{separator}'."
            )

        if len(parts) == 1:
            return None
        if len(parts) > 2:
            raise DataError(
                f"Condition label '{label}' has {len(parts)} agents. Only "
                f"single agents and pairs are supported."
            )

        return parts[0], parts[1]

    return parse_separated_label


def get_label_parser(name="dose_tokens", separator=" + "):
    """
    Look up a label parser by name.

    Parameters
    ----------
    name : str, default="dose_tokens"
        "dose_tokens" (see `parse_dose_label`) or "separator" (see
        `make_separator_parser`)
    separator : str, default=" + "
        separator used by the "separator" parser

    Returns
    -------
    callable
        label parser
    """

    check_choice(name, "label_parser", ["dose_tokens", "separator"])

    if name == "separator":
        return make_separator_parser(separator)

    return parse_dose_label
