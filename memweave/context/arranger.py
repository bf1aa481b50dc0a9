"""
Arranger - Lost-in-the-middle mitigation.

Language models attend most to the start and end of a long input. Given
items ranked best first, the arranger alternates them between the front
and the back so the weakest items meet in the middle:

    ranks  0 1 2 3 4 5
    order  0 2 4 5 3 1
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")


def arrange_for_lost_in_middle(items: Sequence[T]) -> List[T]:
    """
    Reorder a ranked sequence so the best items sit at both edges.

    Even ranks fill positions from the front, odd ranks from the back.
    Sequences of two or fewer items have no middle and come back unchanged.

    Args:
        items: Items ranked descending by value

    Returns:
        New list; the input is not modified
    """
    if len(items) <= 2:
        return list(items)

    front: List[T] = []
    back: List[T] = []

    for rank, item in enumerate(items):
        if rank % 2 == 0:
            front.append(item)
        else:
            back.append(item)

    back.reverse()
    return front + back


__all__ = ["arrange_for_lost_in_middle"]
