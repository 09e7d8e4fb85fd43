"""
Orientation based visibility between profiles.

The rule is evaluated from the viewer's side only: a straight man sees every
woman present, whatever her own orientation. Candidates are not re-checked
against the viewer.
"""

from typing import Iterable, List, TypeVar

from hangout.schemas.enums import Gender, Orientation

P = TypeVar("P")


def is_compatible(viewer, candidate) -> bool:
    """
    `viewer` and `candidate` only need `gender` and `orientation` attributes
    (ORM Profile rows and ProfileView schemas both qualify).
    """
    orientation = Orientation(viewer.orientation)
    viewer_gender = Gender(viewer.gender)
    candidate_gender = Gender(candidate.gender)

    if orientation == Orientation.bisexual:
        return True
    if orientation == Orientation.straight:
        return candidate_gender != viewer_gender
    if orientation == Orientation.gay:
        return candidate_gender == viewer_gender
    return False


def filter_compatible(viewer, candidates: Iterable[P]) -> List[P]:
    """Candidates the viewer may see. The viewer is always dropped from their own list."""
    return [
        c for c in candidates
        if c.user_id != viewer.user_id and is_compatible(viewer, c)
    ]
