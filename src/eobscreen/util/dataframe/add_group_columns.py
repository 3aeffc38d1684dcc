import pandas as pd

def add_group_columns(target_df,
                      group_cols,
                      group_name,
                      sort=True):
    """
    Add an integer column `group_name` to target_df that codes each unique
    combination of the values in `group_cols`.

    Codes are dense (0 ... num_groups - 1) and deterministic. If `sort` is
    True, groups are numbered after sorting on `group_cols` (C-order/row-major;
    ordered categorical columns sort by their category order). If `sort` is
    False, groups are numbered in the order they are first seen in target_df.

    Parameters
    ----------
    target_df : pd.DataFrame
        dataframe to update
    group_cols : str or list
        column name(s) to use for the grouping
    group_name : str
        name of the integer column to create
    sort : bool, default=True
        number groups in sorted order (True) or first-seen order (False)

    Returns
    -------
    target_df : pd.DataFrame
        copy of target_df with the `group_name` column added
    groups : pd.DataFrame
        one row per group, holding `group_cols` and `group_name`, ordered by
        code

    Raises
    ------
    ValueError
        if `group_name` is already a column in target_df
    """

    if isinstance(group_cols, str):
        group_cols = [group_cols]
    group_cols = list(group_cols)

    if group_name in target_df.columns:
        raise ValueError(f"target_df already has a '{group_name}' column")

    # Works on a copy
    target_df = target_df.copy()

    unique_groups = target_df[group_cols].drop_duplicates().copy()
    if sort:
        unique_groups = unique_groups.sort_values(by=group_cols)
    unique_groups = unique_groups.reset_index(drop=True)
    unique_groups[group_name] = unique_groups.index

    # Merge the map back onto the target dataframe, keeping target row order.
    target_df = target_df.merge(unique_groups,
                                on=group_cols,
                                how="left",
                                sort=False)
    target_df[group_name] = target_df[group_name].astype(int)

    return target_df, unique_groups
