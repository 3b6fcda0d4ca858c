"""Modification placement combinatorics.

A peptidoform with k copies of a modification can be re-localized onto any
k of the n residues that may carry it. These functions enumerate all such
placements (n choose k per modification) in a stable order.
"""

from itertools import combinations
from typing import Iterable, List, Sequence, Tuple

from ..modifications import ModificationDatabase, ModificationList, normalize_modifications


def nchoosek_combinations(sites: Sequence[int], k: int) -> List[Tuple[int, ...]]:
    """Enumerate every size-k subset of ``sites`` exactly once.

    Parameters
    ----------
    sites : sequence of int
        Candidate site indices
    k : int
        Number of modifications to place

    Returns
    -------
    list of tuple of int
        Subsets in lexicographic index order. Empty if k < 0 or k > n;
        a single empty tuple if k == 0.

    Examples
    --------
    >>> nchoosek_combinations([1, 3, 5], 2)
    [(1, 3), (1, 5), (3, 5)]
    >>> nchoosek_combinations([1, 3], 3)
    []
    """
    if k < 0 or k > len(sites):
        return []
    return list(combinations(sorted(sites), k))


def modifiable_sites(sequence: str, modification: str, mod_db: ModificationDatabase) -> List[int]:
    """Positions in ``sequence`` whose residue can carry ``modification``."""
    residues = mod_db.residues(modification)
    return [i for i, aa in enumerate(sequence) if aa in residues]


def add_modification_placements(
    templates: Iterable[ModificationList],
    site_combinations: Iterable[Tuple[int, ...]],
    modification: str,
) -> List[ModificationList]:
    """Place ``modification`` on every site combination of every template.

    Combinations that hit a residue already modified in the template are
    skipped.
    """
    site_combinations = list(site_combinations)
    placements = []
    for template in templates:
        occupied = {position for _, position in template}
        for sites in site_combinations:
            if occupied.intersection(sites):
                continue
            placements.append(normalize_modifications(
                list(template) + [(modification, site) for site in sites]
            ))
    return placements


def _placements_on(
    sequence: str,
    modifications: Iterable[Tuple[str, int]],
    mod_db: ModificationDatabase,
) -> List[ModificationList]:
    counts = {}
    for name, _ in modifications:
        counts[name] = counts.get(name, 0) + 1

    placements: List[ModificationList] = [()]
    for name in sorted(counts):
        site_combinations = nchoosek_combinations(modifiable_sites(sequence, name, mod_db), counts[name])
        placements = add_modification_placements(placements, site_combinations, name)
    return placements


def combine_modifications(
    sequence: str,
    modifications: Iterable[Tuple[str, int]],
    mod_db: ModificationDatabase,
) -> List[ModificationList]:
    """Generate all alternative localizations of a peptidoform.

    Every modification type keeps its count; its copies are distributed over
    all residues the modification database allows. Modification types are
    processed in name order, so the output order is deterministic.

    Parameters
    ----------
    sequence : str
        Unmodified sequence
    modifications : iterable of (str, int)
        The template peptidoform's modifications
    mod_db : ModificationDatabase
        Allowed residues per modification

    Returns
    -------
    list of tuple
        One modification tuple per alternative peptidoform; the template's
        own placement is among them when it is valid

    Examples
    --------
    >>> combine_modifications("SASK", [("Phospho", 2)], ModificationDatabase())
    [(('Phospho', 0),), (('Phospho', 2),)]
    """
    return _placements_on(sequence, modifications, mod_db)


def combine_decoy_modifications(
    sequence: str,
    modifications: Iterable[Tuple[str, int]],
    decoy_sequence: str,
    mod_db: ModificationDatabase,
) -> List[ModificationList]:
    """Generate alternative localizations of the target's modifications on a decoy.

    The decoy may offer more (or fewer) modifiable residues than the target:
    target SAS[Phospho]K has two phospho placements, decoy SSSK has three.
    """
    if len(sequence) != len(decoy_sequence):
        return []
    return _placements_on(decoy_sequence, modifications, mod_db)
