"""Grouping of incoming attempts by test identity."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from trend_report.models.attempt import Attempt, ExpectedStatus, TestIdentity


@dataclass(kw_only=True)
class AttemptGroup:
    """All attempts recorded so far for one test, in arrival order."""

    identity: TestIdentity
    expected_status: ExpectedStatus
    attempts: list[Attempt] = field(default_factory=list)


@dataclass
class AttemptAccumulator:
    """Collects attempts per test id without deciding any verdict.

    Attempts are kept in arrival order; the runner reports retries in
    increasing retry order so no re-sorting is done here.
    """

    _groups: dict[str, AttemptGroup] = field(default_factory=dict)

    def record(
        self,
        identity: TestIdentity,
        attempt: Attempt,
        expected_status: ExpectedStatus = "passed",
    ) -> None:
        """Append an attempt, creating the group on first sight."""
        group = self._groups.get(identity.test_id)
        if group is None:
            group = AttemptGroup(identity=identity, expected_status=expected_status)
            self._groups[identity.test_id] = group
        else:
            # The latest declaration wins, as the runner reports it per attempt.
            group.expected_status = expected_status
        group.attempts.append(attempt)

    def reset(self) -> None:
        """Forget everything recorded so far."""
        self._groups.clear()

    def groups(self) -> Sequence[AttemptGroup]:
        """Groups in first-seen order."""
        return list(self._groups.values())

    def __iter__(self) -> Iterator[AttemptGroup]:
        return iter(self.groups())

    def __len__(self) -> int:
        return len(self._groups)
