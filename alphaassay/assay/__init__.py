"""Targeted assay generation: annotation, filtering, UIS and decoys.

Transition-level refinement (reannotate, restrict, detecting) and unique
ion signature generation over in-silico maps of all alternative
modification localizations, with shuffled decoys.
"""

from .combinatorics import (
    nchoosek_combinations,
    modifiable_sites,
    add_modification_placements,
    combine_modifications,
    combine_decoy_modifications,
)

from .swath import (
    NOT_IN_WINDOW,
    as_window_array,
    window_index,
    is_in_window,
)

from .interference import (
    IonPopulation,
    match_within_tolerance,
    matching_peptidoforms,
    is_unique_ion_signature,
)

from .decoys import (
    DecoyAssignment,
    make_rng,
    shuffle_sequence,
    reverse_permutation,
    pseudo_reverse_permutation,
    decoy_sequence,
    transfer_modifications,
    synthesize_decoys,
)

from .insilico import (
    InSilicoMap,
    build_target_map,
    build_decoy_map,
)

from .emitters import (
    check_transition_limits,
    select_assay_ions,
    generate_target_assays,
    generate_decoy_assays,
)

from .transitions import (
    reannotate_transitions,
    restrict_transitions,
    detecting_transitions,
)

from .uis import (
    UISStage,
    uis_transitions,
)

__all__ = [
    # Combinatorics
    'nchoosek_combinations',
    'modifiable_sites',
    'add_modification_placements',
    'combine_modifications',
    'combine_decoy_modifications',

    # Windows
    'NOT_IN_WINDOW',
    'as_window_array',
    'window_index',
    'is_in_window',

    # Interference
    'IonPopulation',
    'match_within_tolerance',
    'matching_peptidoforms',
    'is_unique_ion_signature',

    # Decoys
    'DecoyAssignment',
    'make_rng',
    'shuffle_sequence',
    'reverse_permutation',
    'pseudo_reverse_permutation',
    'decoy_sequence',
    'transfer_modifications',
    'synthesize_decoys',

    # In-silico maps
    'InSilicoMap',
    'build_target_map',
    'build_decoy_map',

    # Emitters
    'check_transition_limits',
    'select_assay_ions',
    'generate_target_assays',
    'generate_decoy_assays',

    # Orchestrators
    'reannotate_transitions',
    'restrict_transitions',
    'detecting_transitions',
    'UISStage',
    'uis_transitions',
]
