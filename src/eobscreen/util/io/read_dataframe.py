import pandas as pd

from eobscreen.errors import DataError

def read_dataframe(source):
    """
    Reads a table of measurements from a file path or DataFrame.

    Handles .csv, .tsv, and .xlsx/.xls files; any other extension is read with
    a sniffed delimiter. A spurious 'Unnamed: 0' column (an integer 0, 1, 2,
    ... index written by `df.to_csv()` without `index=False`) is dropped.

    Parameters
    ----------
    source : pandas.DataFrame or str
        A pandas DataFrame or the file path to read.

    Returns
    -------
    pandas.DataFrame
        The processed DataFrame. DataFrame input is copied, not modified.

    Raises
    ------
    DataError
        If the file does not exist or cannot be parsed.
    TypeError
        If source is neither a str nor a DataFrame.
    """

    if isinstance(source, str):
        path = source
        ext = path.split(".")[-1].strip().lower()
        try:
            if ext in ["xlsx", "xls"]:
                df = pd.read_excel(path)
            elif ext == "csv":
                df = pd.read_csv(path)
            elif ext == "tsv":
                df = pd.read_csv(path, sep="\t")
            else:
                df = pd.read_csv(path, sep=None, engine="python")
        except FileNotFoundError as e:
            raise DataError(f"File not found at path: {path}") from e
        except (ValueError, pd.errors.ParserError) as e:
            raise DataError(f"Error reading file {path}: {e}") from e

    elif isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        raise TypeError("`source` must be a file path (str) or pandas DataFrame.")

    unnamed_col = "Unnamed: 0"
    if unnamed_col in df.columns:
        col_data = df[unnamed_col]
        is_spurious = pd.api.types.is_integer_dtype(col_data) and \
                      col_data.reset_index(drop=True).equals(pd.Series(range(len(df))))
        if is_spurious:
            df = df.drop(columns=unnamed_col)

    return df
