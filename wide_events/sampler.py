import random
from collections.abc import Mapping
from dataclasses import dataclass

from .constants import (
    ERROR_STATUS_THRESHOLD,
    FIELD_DURATION_MS,
    FIELD_ERROR,
    FIELD_OUTCOME,
    FIELD_PATH,
    FIELD_STATUS_CODE,
    FIELD_USER,
    OUTCOME_ERROR,
    RULE_DISABLED,
    RULE_ERROR,
    RULE_PATH,
    RULE_SAMPLE_RATE,
    RULE_SLOW_REQUEST,
    RULE_USER,
    USER_ID,
)
from .metrics import SAMPLING_DECISIONS
from .policy import SamplingPolicy


@dataclass(frozen=True)
class SamplingDecision:
    sampled: bool
    rule: str

    def __bool__(self) -> bool:
        return self.sampled


def is_error(event: Mapping) -> bool:
    status_code = event.get(FIELD_STATUS_CODE)
    if isinstance(status_code, int) and status_code >= ERROR_STATUS_THRESHOLD:
        return True
    return bool(event.get(FIELD_ERROR)) or event.get(FIELD_OUTCOME) == OUTCOME_ERROR


def is_slow(event: Mapping, policy: SamplingPolicy) -> bool:
    duration_ms = event.get(FIELD_DURATION_MS)
    if duration_ms is None:
        return False
    return duration_ms > policy.slow_threshold_ms


def is_always_sampled_user(event: Mapping, policy: SamplingPolicy) -> bool:
    if not policy.always_sample_user_ids:
        return False
    user = event.get(FIELD_USER)
    if not isinstance(user, Mapping):
        return False
    user_id = user.get(USER_ID)
    if user_id is None:
        return False
    ids = policy.always_sample_user_ids
    return user_id in ids or str(user_id) in ids


def is_always_sampled_path(event: Mapping, policy: SamplingPolicy) -> bool:
    if not policy.always_sample_paths:
        return False
    path = event.get(FIELD_PATH)
    if not path:
        return False
    return any(pattern.search(path) for pattern in policy.always_sample_paths)


class TailSampler:
    """Decides whether a finished event is kept.

    Rules are evaluated in order and the first match wins: the global switch,
    then errors, slow requests, listed users and listed paths, and finally a
    coin flip against the policy's sample rate.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def decide(self, event: Mapping, policy: SamplingPolicy) -> SamplingDecision:
        decision = self._decide(event, policy)
        SAMPLING_DECISIONS.labels(
            rule=decision.rule, sampled=str(decision.sampled).lower()
        ).inc()
        return decision

    def _decide(self, event: Mapping, policy: SamplingPolicy) -> SamplingDecision:
        if not policy.enabled:
            return SamplingDecision(False, RULE_DISABLED)

        if policy.always_sample_errors and is_error(event):
            return SamplingDecision(True, RULE_ERROR)

        if policy.always_sample_slow_requests and is_slow(event, policy):
            return SamplingDecision(True, RULE_SLOW_REQUEST)

        if is_always_sampled_user(event, policy):
            return SamplingDecision(True, RULE_USER)

        if is_always_sampled_path(event, policy):
            return SamplingDecision(True, RULE_PATH)

        sampled = self.rng.random() < policy.sample_rate
        return SamplingDecision(sampled, RULE_SAMPLE_RATE)

    def should_sample(self, event: Mapping, policy: SamplingPolicy) -> bool:
        return self.decide(event, policy).sampled


_default_sampler = TailSampler()


def should_sample(event: Mapping, policy: SamplingPolicy) -> bool:
    """Tail sampling decision for ``event`` with the shared default sampler."""
    return _default_sampler.should_sample(event, policy)
