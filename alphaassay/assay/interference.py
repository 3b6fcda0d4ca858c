"""Interference search for unique ion signatures (UIS).

A fragment ion is a UIS for its peptidoform if, within the m/z tolerance,
no other peptidoform in the population produces an ion. The population is
scanned linearly in stored order so that results are reproducible and the
number of hits reflects how ambiguous an ion is.
"""

from typing import List, NamedTuple, Sequence, Tuple, Union

import numpy as np
import numba


class IonPopulation(NamedTuple):
    """Fragment ions competing for interference, with their peptidoforms.

    Attributes
    ----------
    mz : np.ndarray (float64)
        Ion m/z values in stored order
    labels : list of str
        Peptidoform label of each ion
    """
    mz: np.ndarray
    labels: List[str]

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[float, str]]) -> 'IonPopulation':
        """Build from (m/z, peptidoform) pairs."""
        return cls(
            np.array([mz for mz, _ in pairs], dtype=np.float64),
            [label for _, label in pairs],
        )


Candidates = Union[IonPopulation, Sequence[Tuple[float, str]]]


@numba.jit(nopython=True, cache=True)
def match_within_tolerance(
    population_mz: np.ndarray,
    query_mz: float,
    tolerance: float,
) -> np.ndarray:
    """Indices of all population ions within ``tolerance`` of ``query_mz``.

    Parameters
    ----------
    population_mz : np.ndarray (float64)
        Ion m/z values (any order)
    query_mz : float
        Queried fragment m/z
    tolerance : float
        Absolute tolerance in Th (inclusive)

    Returns
    -------
    np.ndarray (int64)
        Matching indices in ascending (stored) order

    Performance
    -----------
    O(n) per query; populations are per window (and per sequence by
    default), so n stays in the hundreds.
    """
    n = len(population_mz)
    hits = np.empty(n, dtype=np.int64)
    count = 0
    for i in range(n):
        if abs(population_mz[i] - query_mz) <= tolerance:
            hits[count] = i
            count += 1
    return hits[:count]


def _as_population(candidates: Candidates) -> IonPopulation:
    if isinstance(candidates, IonPopulation):
        return candidates
    return IonPopulation.from_pairs(candidates)


def matching_peptidoforms(
    fragment_mz: float,
    candidates: Candidates,
    tolerance: float,
) -> List[str]:
    """Peptidoforms with an ion within ``tolerance`` of ``fragment_mz``.

    Labels are returned in stored order and are not de-duplicated: several
    hits from the same peptidoform show up several times.

    Examples
    --------
    >>> matching_peptidoforms(500.0, [(500.01, "A"), (600.0, "B"), (499.99, "A")], 0.05)
    ['A', 'A']
    """
    population = _as_population(candidates)
    hits = match_within_tolerance(population.mz, float(fragment_mz), float(tolerance))
    return [population.labels[i] for i in hits]


def is_unique_ion_signature(
    fragment_mz: float,
    peptidoform: str,
    candidates: Candidates,
    tolerance: float,
) -> bool:
    """Whether the only peptidoform matching ``fragment_mz`` is ``peptidoform``."""
    matches = matching_peptidoforms(fragment_mz, candidates, tolerance)
    return bool(matches) and all(label == peptidoform for label in matches)
