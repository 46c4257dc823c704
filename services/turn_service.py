"""
Turn service: snake order derivation.

Sequence numbers are 1-based and run across the whole draft. With n
participants:
- round = floor((sequence - 1) / n) + 1
- odd rounds walk the draft order front to back
- even rounds walk it back to front

Pure computation, no state.
"""
from typing import List, Sequence


def get_round_for_sequence(sequence_number: int, participant_count: int) -> int:
    """
    Round a 1-based sequence number falls into.

    Examples (3 participants):
        get_round_for_sequence(1, 3) -> 1
        get_round_for_sequence(3, 3) -> 1
        get_round_for_sequence(4, 3) -> 2
    """
    if participant_count < 1:
        raise ValueError("participant_count must be >= 1")
    if sequence_number < 1:
        raise ValueError("sequence_number is 1-based")
    return (sequence_number - 1) // participant_count + 1


def is_reverse_round(round_number: int) -> bool:
    return round_number % 2 == 0


def get_effective_position(sequence_number: int, participant_count: int) -> int:
    """
    Index into the draft order of whoever picks at sequence_number.

    Examples (3 participants):
        sequence 1, 2, 3 -> 0, 1, 2
        sequence 4, 5, 6 -> 2, 1, 0
    """
    round_number = get_round_for_sequence(sequence_number, participant_count)
    position = (sequence_number - 1) % participant_count
    if is_reverse_round(round_number):
        return participant_count - 1 - position
    return position


def get_picker_for_sequence(draft_order: Sequence[str], sequence_number: int) -> str:
    return draft_order[get_effective_position(sequence_number, len(draft_order))]


def get_round_order(draft_order: Sequence[str], round_number: int) -> List[str]:
    """Participants in the order they pick during round_number"""
    if is_reverse_round(round_number):
        return list(reversed(draft_order))
    return list(draft_order)


def get_total_picks(participant_count: int, category_count: int) -> int:
    """Picks needed for full coverage: one per participant per enabled category"""
    return participant_count * category_count
