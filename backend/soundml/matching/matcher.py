"""Reduction of a classification batch into group matches."""
from typing import List, Optional, Sequence
from soundml.matching.groups import GroupMatch, SoundGroup
from soundml.matching.sound import Classification


def reduce_matches(
    groups: Sequence[SoundGroup],
    classifications: Sequence[Classification]
) -> Optional[List[GroupMatch]]:
    """
    Reduce one window's classifications to the groups they match.

    Pure function: identical inputs always give identical output.

    Args:
        groups: Groups of interest, in declaration order
        classifications: Classification batch for one analysis window

    Returns:
        Non-empty list of matches in group declaration order, or None when
        no group matched this window
    """
    matches = [
        match for match in (group.best_match(classifications) for group in groups)
        if match is not None
    ]
    return matches or None
