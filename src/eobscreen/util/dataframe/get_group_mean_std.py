import numpy as np

def get_group_mean_std(values, groups, num_groups=None):
    """
    Calculate the mean, sample standard deviation and size of each group.

    Values are grouped according to a corresponding array of integer group
    assignments. Uses `np.bincount` for efficient summation and counting.

    Parameters
    ----------
    values : array_like
        A 1D array of numerical values.
    groups : array_like
        A 1D array of group assignments, with the same shape as `values`.
        Group numbers must be non-negative integers.
    num_groups : int, optional
        Total number of groups. Groups without members get a count of zero and
        NaN mean/std. If None, this is max(groups) + 1.

    Returns
    -------
    group_means : np.ndarray
        (num_groups,) array of group means (NaN for empty groups).
    group_stds : np.ndarray
        (num_groups,) array of sample standard deviations. NaN for groups
        with fewer than two members.
    counts : np.ndarray
        (num_groups,) integer array of group sizes.

    Raises
    ------
    ValueError
        If `values` and `groups` do not have the same shape, if `groups`
        contains negative or non-integer values, or if a group number is
        >= `num_groups`.

    Examples
    --------
    >>> values = np.array([1, 2, 3, 4, 5])
    >>> groups = np.array([0, 0, 1, 1, 2])
    >>> means, stds, counts = get_group_mean_std(values, groups)
    >>> print(means)
    [1.5 3.5 5. ]
    >>> print(counts)
    [2 2 1]
    """

    values = np.asarray(values, dtype=float)
    groups = np.asarray(groups)
    if values.shape != groups.shape:
        raise ValueError("values and groups must be arrays of the same shape.")

    if groups.size > 0 and not np.issubdtype(groups.dtype, np.integer):
        if not np.all(groups == np.floor(groups)):
            raise ValueError("groups array must contain integer values.")
    groups = groups.astype(int)

    if np.any(groups < 0):
        raise ValueError("group numbers must be non-negative.")

    if num_groups is None:
        num_groups = int(groups.max()) + 1 if groups.size > 0 else 0
    if groups.size > 0 and groups.max() >= num_groups:
        raise ValueError("group numbers must be less than num_groups.")

    counts = np.bincount(groups, minlength=num_groups)
    sums = np.bincount(groups, weights=values, minlength=num_groups)

    group_means = np.full(num_groups, np.nan)
    np.divide(sums, counts, out=group_means, where=(counts != 0))

    # Sum of squared deviations from each group's own mean
    resid = values - group_means[groups]
    ss = np.bincount(groups, weights=resid**2, minlength=num_groups)

    group_stds = np.full(num_groups, np.nan)
    np.divide(ss, counts - 1, out=group_stds, where=(counts > 1))
    group_stds = np.sqrt(group_stds)

    return group_means, group_stds, counts
