"""Client similarity scoring used by duplicate detection.

The scan only depends on the ``SimilarityPolicy`` protocol; ``DogNameSimilarityPolicy``
is the default. A pair is only ever a candidate when the dogs' names match, then
phone, address, owner name and email domain add evidence.
"""

import re
from dataclasses import dataclass, field
from typing import Protocol

from ...schemas import Client
from ...shared.validators import FREE_EMAIL_PROVIDERS, email_domain, normalize_uk_phone

HIGH = "high"
MEDIUM = "medium"
LOW = "low"

DOG_NICKNAMES = {
    "max": {"maxi", "maxie"},
    "buddy": {"buddie", "bud"},
    "charlie": {"chuck", "chas"},
    "bella": {"belle"},
    "lucy": {"lucie"},
    "molly": {"mollie"},
    "bailey": {"bayley"},
    "riley": {"ryley"},
}


@dataclass(frozen=True)
class SimilarityScore:
    is_match: bool
    confidence: str = LOW
    reasons: tuple[str, ...] = field(default_factory=tuple)
    dog_name: str = ""


NO_MATCH = SimilarityScore(is_match=False)


class SimilarityPolicy(Protocol):
    def score(self, a: Client, b: Client) -> SimilarityScore: ...


def levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def compare_dog_names(name_a: str, name_b: str) -> tuple[bool, bool]:
    """Returns (is_match, exact)"""
    a, b = name_a.strip().lower(), name_b.strip().lower()
    if a == b:
        return True, True

    for base, variants in DOG_NICKNAMES.items():
        if (a == base and b in variants) or (b == base and a in variants) or (a in variants and b in variants):
            return True, False

    # Tolerate typos: at most 2 edits, fewer for short names
    max_distance = min(2, min(len(a), len(b)) // 3)
    distance = levenshtein(a, b)
    return 0 < distance <= max_distance, False


def compare_addresses(address_a: str, address_b: str) -> str:
    """'exact', 'partial', 'common elements' or '' when unrelated"""
    a = re.sub(r"[^\w\s]", "", address_a.lower()).strip()
    b = re.sub(r"[^\w\s]", "", address_b.lower()).strip()
    if not a or not b:
        return ""
    if a == b:
        return "exact"
    if a in b or b in a:
        return "partial"
    words_a = {word for word in a.split() if len(word) > 2}
    words_b = {word for word in b.split() if len(word) > 2}
    if len(words_a & words_b) >= 2:
        return "common elements"
    return ""


def compare_names(a: Client, b: Client) -> str:
    first_a, last_a = a.firstName.lower(), a.lastName.lower()
    first_b, last_b = b.firstName.lower(), b.lastName.lower()
    if not (first_a or last_a) or not (first_b or last_b):
        return ""
    if last_a and last_a == last_b:
        return "same last name"
    if first_a and first_a == first_b:
        return "same first name"
    if levenshtein(first_a, first_b) <= 1 and levenshtein(last_a, last_b) <= 1:
        return "similar names"
    return ""


class DogNameSimilarityPolicy:
    def score(self, a: Client, b: Client) -> SimilarityScore:
        if not a.dogName or not b.dogName:
            return NO_MATCH

        dogs_match, exact = compare_dog_names(a.dogName, b.dogName)
        if not dogs_match:
            return NO_MATCH

        reasons = [f"Same dog name: {a.dogName}"]
        confidence = MEDIUM if exact else LOW

        phone_a = normalize_uk_phone(a.phone)
        if phone_a and phone_a == normalize_uk_phone(b.phone):
            reasons.append("Same phone number")
            confidence = HIGH

        if a.address and b.address:
            similarity = compare_addresses(a.address, b.address)
            if similarity:
                reasons.append(f"Similar address: {similarity}")
                if confidence == MEDIUM:
                    confidence = HIGH

        name_reason = compare_names(a, b)
        if name_reason:
            reasons.append(f"Similar names: {name_reason}")

        domain = email_domain(a.email)
        if domain and domain == email_domain(b.email) and domain not in FREE_EMAIL_PROVIDERS:
            reasons.append("Same email domain")

        return SimilarityScore(is_match=True, confidence=confidence, reasons=tuple(reasons), dog_name=a.dogName)


def completeness(client: Client) -> int:
    """Weighted count of populated fields; the dog, email and phone count double"""
    score = 0
    score += 1 if client.firstName else 0
    score += 1 if client.lastName else 0
    score += 2 if client.dogName else 0
    score += 2 if client.email else 0
    score += 2 if client.phone else 0
    score += 1 if client.address else 0
    score += 1 if client.behaviouralBriefId else 0
    score += 1 if client.behaviourQuestionnaireId else 0
    return score
