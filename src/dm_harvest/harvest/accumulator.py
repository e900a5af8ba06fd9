from typing import Optional

from dm_harvest.types.harvest_state import HarvestState
from dm_harvest.types.records import ConversationSummary

# Group conversation links contain a path separator, 1:1 handles never do
GROUP_IDENTITY_SEPARATOR = "/"


def is_group_identity(identity: str) -> bool:
    return GROUP_IDENTITY_SEPARATOR in identity


class DedupAccumulator:
    """Admits each conversation identity at most once into a HarvestState."""

    def __init__(self, state: HarvestState):
        self.state = state

    @property
    def size(self) -> int:
        return len(self.state.accumulated)

    def seen(self, identity: str) -> bool:
        return identity in self.state.processed_identities

    def admit(self, candidate: Optional[ConversationSummary]) -> bool:
        """Add the candidate if it is new. Returns True only when it was added.

        Re-offering an admitted identity is a no-op, not an error.
        """
        if candidate is None:
            return False

        assert isinstance(candidate, ConversationSummary), (
            f"admit() expects a ConversationSummary, got {type(candidate).__name__}"
        )
        identity = candidate.identity
        assert identity and identity == identity.strip(), f"Malformed identity {identity!r}"

        if is_group_identity(identity) or self.seen(identity):
            return False

        self.state.processed_identities.add(identity)
        self.state.accumulated.append(candidate)

        assert len(self.state.processed_identities) == len(self.state.accumulated), (
            "Accumulated conversations and processed identities diverged"
        )
        return True
