from eobscreen.util import read_dataframe
from eobscreen.process_raw.wide_to_long import wide_to_long
from eobscreen.process_raw.check_measurements import check_measurements


def read_measurements(source, replicate_columns=None):
    """
    Read measurements from a file or dataframe in either long or wide form.

    A table with `replicate` and `value` columns is treated as long form.
    Anything else is treated as wide form (one column per replicate slot) and
    reshaped with `wide_to_long`.

    Parameters
    ----------
    source : str or pandas.DataFrame
        path to a csv/tsv/xlsx file, or a dataframe
    replicate_columns : list of str, optional
        replicate columns for wide input. Ignored for long input.

    Returns
    -------
    pandas.DataFrame
        validated long-form measurements (see `check_measurements`)
    """

    df = read_dataframe(source)

    if "replicate" not in df.columns or "value" not in df.columns:
        df = wide_to_long(df, replicate_columns=replicate_columns)

    return check_measurements(df)
