"""
Deterministic policy engine. One ParsedLabel, one profile -> PolicyResult.
Allergens, then dietary rules, then forbidden keywords; status and confidence are aggregated
from the combined findings. No I/O, no shared mutable state between profile evaluations.
"""
from functools import lru_cache
from typing import Iterable, List, Optional, Union
import logging

from labelsafe.evaluation.allergen_matcher import check_allergens
from labelsafe.evaluation.dietary_matcher import check_dietary_preferences
from labelsafe.evaluation.keyword_matcher import check_forbidden_keywords
from labelsafe.models.finding import Finding
from labelsafe.models.parsed_label import ParsedLabel
from labelsafe.models.policy_result import PolicyResult
from labelsafe.models.user_profile import UserProfile
from labelsafe.terms.dietary_rules import DietaryRuleRegistry

logger = logging.getLogger(__name__)

ProfileInput = Union[UserProfile, dict]


def as_profile(profile: ProfileInput) -> UserProfile:
    """Profiles arriving as loose dicts are converted (and defaulted) once, here."""
    if isinstance(profile, UserProfile):
        return profile
    return UserProfile.from_dict(profile if isinstance(profile, dict) else {})


class PolicyEngine:
    """
    Rule registry is read-only after load, so one engine can serve concurrent evaluations.
    """

    def __init__(self, dietary_rules: Optional[DietaryRuleRegistry] = None):
        self._rules = dietary_rules or DietaryRuleRegistry()

    @property
    def dietary_rules(self) -> DietaryRuleRegistry:
        return self._rules

    def evaluate(self, parsed: ParsedLabel, profile: ProfileInput) -> PolicyResult:
        user = as_profile(profile)
        findings: List[Finding] = []
        findings.extend(check_allergens(parsed, user))
        findings.extend(check_dietary_preferences(parsed, user, self._rules))
        findings.extend(check_forbidden_keywords(parsed, user))
        result = PolicyResult.from_findings(user.id, user.name, findings)
        logger.debug(
            "POLICY_ENGINE profile=%s status=%s allergens=%d dietary=%d keywords=%d confidence=%.2f",
            user.id, result.status.value, result.allergen_count, result.dietary_count,
            result.keyword_count, result.confidence,
        )
        return result

    def evaluate_for_profiles(self, parsed: ParsedLabel, profiles: Iterable[ProfileInput]) -> List[PolicyResult]:
        """One result per profile, in input order."""
        return [self.evaluate(parsed, p) for p in profiles]


@lru_cache(maxsize=1)
def get_default_engine() -> PolicyEngine:
    """Engine backed by the bundled (or DIETARY_RULES_PATH) rule table; built on first use."""
    return PolicyEngine()


def evaluate_label(parsed: ParsedLabel, profile: ProfileInput) -> PolicyResult:
    return get_default_engine().evaluate(parsed, profile)


def evaluate_label_for_profiles(parsed: ParsedLabel, profiles: Iterable[ProfileInput]) -> List[PolicyResult]:
    return get_default_engine().evaluate_for_profiles(parsed, profiles)
