"""Decoy peptide synthesis for UIS decoy transitions.

Decoys are residue permutations of their targets, so they keep length,
composition and therefore precursor mass, while their fragment ions move.
Modifications travel with the residue that carries them.

Decoy methods:
- shuffle: seeded pseudorandom permutation (default)
- reverse: simple reversal
- pseudo_reverse: reversal with the C-terminal residue kept in place

Design principles:
1. One decoy per unmodified target sequence, shared by all its peptidoforms
   and charge states
2. The random generator is owned by one synthesize_decoys() call; a fixed
   seed gives identical decoys across runs and machines
3. A shuffle never returns the target itself when another order exists
"""

import logging
import time
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..constants import (
    DECOY_PREFIX,
    DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
    DEFAULT_SHUFFLE_SEED,
)
from ..experiment import Peptide
from ..modifications import ModificationDatabase, ModificationList, normalize_modifications
from .combinatorics import combine_decoy_modifications

logger = logging.getLogger(__name__)

DECOY_METHODS = ('shuffle', 'reverse', 'pseudo_reverse')
PLACEMENT_MODES = ('transfer', 'recombine')

MAX_SHUFFLE_ATTEMPTS = 20


@dataclass
class DecoyAssignment:
    """A target peptide's decoy and its modification placements.

    Attributes
    ----------
    target_id : str
        Target peptide reference
    decoy : Peptide
        Decoy peptide (DECOY_ prefixed id, decoy flag set)
    permutation : np.ndarray (int64)
        decoy.sequence[j] == target.sequence[permutation[j]]
    placements : list of tuple
        Decoy modification placements. With placement mode "transfer",
        placements[i] is the decoy analogue of the target's placement i.
    placement_mode : str
        "transfer" or "recombine"
    """
    target_id: str
    decoy: Peptide
    permutation: np.ndarray
    placements: List[ModificationList]
    placement_mode: str = 'transfer'


def make_rng(shuffle_seed: int = DEFAULT_SHUFFLE_SEED) -> np.random.Generator:
    """Create the generator for one decoy synthesis run.

    A seed of -1 is replaced by a time-derived one (logged, so the run can be
    repeated); any other integer gives a reproducible stream.
    """
    if shuffle_seed == -1:
        shuffle_seed = time.time_ns() % (2 ** 32)
        logger.info(f"Using time-derived shuffle seed: {shuffle_seed}")
    return np.random.default_rng(shuffle_seed % (2 ** 64))


def apply_permutation(sequence: str, permutation: np.ndarray) -> str:
    return "".join(sequence[i] for i in permutation)


def shuffle_sequence(
    sequence: str,
    rng: np.random.Generator,
    avoid: AbstractSet[str] = frozenset(),
) -> Tuple[str, np.ndarray]:
    """Shuffle a sequence, avoiding the identity and ``avoid``.

    Parameters
    ----------
    sequence : str
        Target sequence
    rng : np.random.Generator
        Generator owned by the caller's run
    avoid : set of str
        Sequences the decoy should not reproduce (targets and earlier decoys)

    Returns
    -------
    decoy : str
        Shuffled sequence, same length and residue multiset
    permutation : np.ndarray (int64)
        decoy[j] == sequence[permutation[j]]

    Examples
    --------
    >>> decoy, perm = shuffle_sequence("PEPTIDEK", np.random.default_rng(42))
    >>> sorted(decoy) == sorted("PEPTIDEK")
    True
    """
    n = len(sequence)
    identity = np.arange(n, dtype=np.int64)
    if len(set(sequence)) < 2:
        return sequence, identity

    for _ in range(MAX_SHUFFLE_ATTEMPTS):
        permutation = rng.permutation(n).astype(np.int64)
        decoy = apply_permutation(sequence, permutation)
        if decoy != sequence and decoy not in avoid:
            return decoy, permutation

    for shift in range(1, n):
        permutation = np.roll(identity, shift)
        decoy = apply_permutation(sequence, permutation)
        if decoy != sequence and decoy not in avoid:
            return decoy, permutation

    # Every rotation collides; rotation by one still differs from a non-constant sequence
    permutation = np.roll(identity, 1)
    return apply_permutation(sequence, permutation), permutation


def reverse_permutation(n: int) -> np.ndarray:
    return np.arange(n, dtype=np.int64)[::-1].copy()


def pseudo_reverse_permutation(n: int) -> np.ndarray:
    """Reverse all but the C-terminal residue (``PEPTIDEK`` → ``EDITPEPK``)."""
    if n <= 2:
        return np.arange(n, dtype=np.int64)
    return np.concatenate([np.arange(n - 1, dtype=np.int64)[::-1], [n - 1]]).astype(np.int64)


def decoy_sequence(
    sequence: str,
    method: str,
    rng: np.random.Generator,
    avoid: AbstractSet[str] = frozenset(),
) -> Tuple[str, np.ndarray]:
    """Decoy sequence and permutation for one target sequence.

    Raises
    ------
    ValueError
        If method is not recognized
    """
    if method == 'shuffle':
        return shuffle_sequence(sequence, rng, avoid)
    elif method == 'reverse':
        permutation = reverse_permutation(len(sequence))
    elif method == 'pseudo_reverse':
        permutation = pseudo_reverse_permutation(len(sequence))
    else:
        raise ValueError(
            f"Unknown decoy method: {method}. "
            f"Must be 'shuffle', 'reverse', or 'pseudo_reverse'"
        )
    return apply_permutation(sequence, permutation), permutation


def transfer_modifications(
    modifications: Iterable[Tuple[str, int]],
    permutation: np.ndarray,
) -> ModificationList:
    """Move each modification to where its residue lands in the decoy.

    Examples
    --------
    >>> transfer_modifications([("Phospho", 2)], np.array([2, 0, 1, 3]))
    (('Phospho', 0),)
    """
    inverse = np.argsort(permutation)
    return normalize_modifications((name, int(inverse[position])) for name, position in modifications)


def synthesize_decoys(
    peptides: Sequence[Peptide],
    placement_map: Dict[str, List[ModificationList]],
    shuffle_seed: int = DEFAULT_SHUFFLE_SEED,
    mod_db: Optional[ModificationDatabase] = None,
    placement_mode: str = 'transfer',
    method: str = 'shuffle',
    max_alternatives: int = DEFAULT_MAX_ALTERNATIVE_LOCALIZATIONS,
) -> Dict[str, DecoyAssignment]:
    """Synthesize a decoy for every target peptide with placements.

    Parameters
    ----------
    peptides : sequence of Peptide
        Document peptides, in document order
    placement_map : dict
        Target peptide id → target placements (from the target in-silico map);
        peptides without an entry get no decoy
    shuffle_seed : int
        -1 for a time-derived seed, any other value for reproducible decoys
    mod_db : ModificationDatabase
        Needed for placement mode "recombine"
    placement_mode : str
        "transfer": decoy placement i is the analogue of target placement i.
        "recombine": enumerate placements on the decoy's own modifiable sites.
    method : str
        "shuffle", "reverse" or "pseudo_reverse"
    max_alternatives : int
        Recombined placement lists above this size fall back to "transfer"

    Returns
    -------
    dict
        Target peptide id → DecoyAssignment, in document order

    Raises
    ------
    ValueError
        If method or placement_mode is not recognized
    """
    if placement_mode not in PLACEMENT_MODES:
        raise ValueError(
            f"Unknown placement mode: {placement_mode}. Must be 'transfer' or 'recombine'"
        )
    if method not in DECOY_METHODS:
        raise ValueError(
            f"Unknown decoy method: {method}. "
            f"Must be 'shuffle', 'reverse', or 'pseudo_reverse'"
        )
    if mod_db is None:
        mod_db = ModificationDatabase()

    targets = [peptide for peptide in peptides if peptide.id in placement_map]
    logger.info(
        f"Generating {len(targets):,} decoy peptides "
        f"(method: {method}, placements: {placement_mode})..."
    )

    rng = make_rng(shuffle_seed)
    avoid = {peptide.sequence for peptide in targets}
    sequence_decoys: Dict[str, Tuple[str, np.ndarray]] = {}
    assignments: Dict[str, DecoyAssignment] = {}

    for peptide in targets:
        if peptide.sequence not in sequence_decoys:
            sequence_decoys[peptide.sequence] = decoy_sequence(peptide.sequence, method, rng, avoid)
            avoid.add(sequence_decoys[peptide.sequence][0])
        decoy_seq, permutation = sequence_decoys[peptide.sequence]

        decoy_modifications = transfer_modifications(peptide.modifications, permutation)
        transferred = [transfer_modifications(p, permutation) for p in placement_map[peptide.id]]

        mode = placement_mode
        placements = transferred
        if placement_mode == 'recombine':
            placements = combine_decoy_modifications(
                peptide.sequence, peptide.modifications, decoy_seq, mod_db
            )
            if len(placements) > max_alternatives:
                logger.debug(
                    f"Decoy of {peptide.id} has {len(placements)} placements, "
                    f"using transferred placements instead"
                )
                placements = transferred
                mode = 'transfer'

        decoy = Peptide(
            id=DECOY_PREFIX + peptide.id,
            sequence=decoy_seq,
            modifications=decoy_modifications,
            charge=peptide.charge,
            protein_refs=[DECOY_PREFIX + ref for ref in peptide.protein_refs],
            retention_time=peptide.retention_time,
            decoy=True,
        )
        assignments[peptide.id] = DecoyAssignment(peptide.id, decoy, permutation, placements, mode)

    logger.info(f"✓ Generated {len(assignments):,} decoys from {len(sequence_decoys):,} sequences")

    return assignments
