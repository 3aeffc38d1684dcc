from eobscreen.errors import DataError

def check_columns(df,required_columns):
    """
    Check if a DataFrame contains all required columns.

    This function verifies that a given Pandas DataFrame contains all the
    columns specified in a list of required column names. If any required
    columns are missing, it raises a DataError listing them.

    Parameters
    ----------
    df : pandas.DataFrame
        The DataFrame to check.
    required_columns : list of str
        A list of column names that are required to be present in the DataFrame.

    Raises
    ------
    DataError
        If any of the required columns are not found in the DataFrame. The
        message lists the missing columns in the order they were requested.
    """

    seen_set = set(df.columns)
    missing = [c for c in required_columns if c not in seen_set]
    if len(missing) > 0:
        err = "Not all required columns seen. Missing columns:\n"
        for c in missing:
            err += f"    {c}\n"
        err += "\n"
        raise DataError(err)
