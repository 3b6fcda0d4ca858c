"""Precursor isolation (SWATH) window lookup.

Windows are half-open m/z intervals [low, high), sorted ascending and
non-overlapping. The ordering is a precondition and is not checked at
lookup time.
"""

from typing import Sequence, Tuple, Union

import numpy as np
import numba

NOT_IN_WINDOW = -1

Windows = Union[np.ndarray, Sequence[Tuple[float, float]]]


def as_window_array(windows: Windows) -> np.ndarray:
    """Convert windows to a (n, 2) float64 array of [low, high).

    Examples
    --------
    >>> as_window_array([(400, 425), (425, 450)]).shape
    (2, 2)
    """
    return np.asarray(windows, dtype=np.float64).reshape(-1, 2)


@numba.jit(nopython=True, cache=True)
def window_index_numba(windows: np.ndarray, mz: float) -> int:
    """Binary search for the window containing ``mz`` (Numba-compiled).

    Parameters
    ----------
    windows : np.ndarray (float64)
        Shape (n, 2), sorted by lower bound, non-overlapping
    mz : float
        Query m/z

    Returns
    -------
    int
        Window ordinal, or -1 if ``mz`` is outside every window
    """
    n = windows.shape[0]

    # Last window with low <= mz
    left, right = 0, n
    while left < right:
        mid = (left + right) // 2
        if windows[mid, 0] <= mz:
            left = mid + 1
        else:
            right = mid
    idx = left - 1

    if idx < 0 or mz >= windows[idx, 1]:
        return -1
    return idx


def window_index(windows: Windows, precursor_mz: float) -> int:
    """Ordinal of the window containing ``precursor_mz``, or NOT_IN_WINDOW.

    Examples
    --------
    >>> window_index([(400, 425), (425, 450)], 425.0)
    1
    >>> window_index([(400, 425), (425, 450)], 450.0)
    -1
    """
    return int(window_index_numba(as_window_array(windows), float(precursor_mz)))


def is_in_window(windows: Windows, precursor_mz: float, product_mz: float) -> bool:
    """Whether ``product_mz`` falls inside the precursor's isolation window.

    Such a fragment is swamped by the isolated precursor and cannot serve as
    a transition. A precursor outside every window yields False; callers
    that need to treat that case check window_index() for NOT_IN_WINDOW.
    """
    windows = as_window_array(windows)
    idx = window_index_numba(windows, float(precursor_mz))
    if idx == NOT_IN_WINDOW:
        return False
    return bool(windows[idx, 0] <= product_mz < windows[idx, 1])
