"""Contact-leak and off-platform solicitation classifier."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, Protocol, runtime_checkable

from rapidfuzz import fuzz

from ..schemas.messaging import MatchedCategory, RiskLevel, Verdict
from ..errors import ClassifierInconclusive

PHONE_NUMBER = "phone_number"
EMAIL_ADDRESS = "email_address"
EXTERNAL_PLATFORM = "external_platform"
OFF_PLATFORM_REQUEST = "off_platform_request"

DEFAULT_PLATFORMS: tuple[str, ...] = (
    "whatsapp",
    "telegram",
    "discord",
    "snapchat",
    "instagram",
    "facebook",
    "linkedin",
    "twitter",
    "tiktok",
    "wechat",
    "viber",
    "skype",
    "kik",
    "imessage",
    "facetime",
)

# Names that survive fuzzy and run-together matching without colliding with
# ordinary words ("message", "face time").
FUZZY_PLATFORMS: tuple[str, ...] = (
    "whatsapp",
    "telegram",
    "discord",
    "snapchat",
    "instagram",
    "facebook",
    "linkedin",
    "twitter",
)
COMPACT_PLATFORMS: tuple[str, ...] = (
    "whatsapp",
    "telegram",
    "snapchat",
    "instagram",
    "facebook",
    "linkedin",
)

_ZERO_WIDTH_RE = re.compile("[\u00ad\u200b-\u200f\u2060\ufeff]")

_DIGIT_WORDS = {
    "zero": "0",
    "one": "1",
    "two": "2",
    "three": "3",
    "four": "4",
    "five": "5",
    "six": "6",
    "seven": "7",
    "eight": "8",
    "nine": "9",
}
_DIGIT_WORD_RE = re.compile("|".join(_DIGIT_WORDS))
# whole tokens made only of digits and spelled digits, e.g. "seven" or "0seven1"
_DIGIT_TOKEN_RE = re.compile(r"\b(?:\d|" + "|".join(_DIGIT_WORDS) + r")+\b")
_OH_RE = re.compile(r"\boh\b")
_LETTER_O_RE = re.compile(r"(?<=\d)o(?=\d)|(?<![a-z])o(?=[\s\-.]?\d)")


def _spell_out_digits(match: re.Match[str]) -> str:
    return _DIGIT_WORD_RE.sub(lambda m: _DIGIT_WORDS[m.group(0)], match.group(0))

# Calendar dates are removed before the digit-run scan so date ranges do not
# read as long numbers. Only plausible dates that stand alone qualify.
_DATE_RE = re.compile(
    r"(?<![\d./\-])(?<!\d\s)"
    r"(?:0?[1-9]|[12]\d|3[01])([/.\-])(?:0?[1-9]|1[0-2])\1(?:19|20)\d{2}"
    r"(?![./\-\s]?\d)"
)
_ISO_DATE_RE = re.compile(r"(?<![\d\-])(?:19|20)\d{2}-(?:0[1-9]|1[0-2])-(?:0[1-9]|[12]\d|3[01])(?![\d\-])")

_DIGIT_RUN_RE = re.compile(r"\+?\(?\d(?:[\s\-./(),]{0,3}\d){5,}")
_US_SHAPE_RE = re.compile(r"\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]\d{4}")
_PHONE_CUE_RE = re.compile(
    r"\b(?:call|text|ring|phone|mobile|cell|tel|number|whatsapp|sms|reach)\W*"
    r"(?:me\W*)?(?:on|at|is|no)?\W*$"
)

_EMAIL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[a-z0-9._%+\-]+\s?@\s?[a-z0-9\-]+(?:\.[a-z0-9\-]+)*\.[a-z]{2,}"),
    re.compile(
        r"[a-z0-9._%+\-]+\s*@\s*[a-z0-9\-]+(?:\s*\.\s*[a-z0-9\-]+)*\s*\.\s*"
        r"(?:com|net|org|co|uk|io|me|info|edu|ac|biz)\b"
    ),
    re.compile(
        r"[a-z0-9._%+\-]+\s*[(\[{<]\s*at\s*[)\]}>]\s*[a-z0-9\-]+"
        r"(?:\.[a-z0-9\-]+)*\.[a-z]{2,}"
    ),
    re.compile(
        r"[a-z0-9._%+\-]+\s*(?:[(\[{<]\s*at\s*[)\]}>]|\s+at\s+)\s*[a-z0-9\-]+"
        r"(?:\s*(?:[(\[{<]\s*dot\s*[)\]}>]|\s+dot\s+)\s*[a-z0-9\-]+)+"
    ),
    re.compile(
        r"\bmy\s+(?:personal\s+|private\s+|work\s+)?(?:e-?mail|gmail|hotmail|outlook|yahoo)"
        r"(?:\s+address)?\s+is\b"
    ),
    re.compile(r"\be-?mail\s+me\s+(?:at|on)\b"),
    re.compile(r"\be-?mail\s*:\s*[a-z0-9._%+\-]{3,}"),
    re.compile(r"\bsend\s+(?:your\s+)?cv\s+to\b"),
)

_PLATFORM_LINK_RE = re.compile(
    r"\b(?:wa\.me|t\.me|m\.me|fb\.me|discord\.gg|"
    r"(?:www\.)?(?:instagram|facebook|linkedin|twitter|x|tiktok|snapchat|telegram)\.com)\b"
)
_PLATFORM_ALIAS_RE = re.compile(
    r"\b(?:what'?s\s*app|whats\s*ap|fb|insta|ig\s+handle|snap\s*chat|tik\s*tok|"
    r"google\s+(?:hangouts|chat)|fb\s+messenger)\b"
)
_SIGNAL_RE = re.compile(
    r"\b(?:on|via|over|use|using|download|add\s+me\s+on)\s+signal\b|"
    r"\bsignal\s+(?:app|messenger|number)\b"
)

_OFF_PLATFORM_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:outside|off)\s+(?:of\s+)?(?:this|the)\s+(?:platform|site|website|app)\b"),
    re.compile(r"\boff[\s\-]?platform\b"),
    re.compile(r"\bcontact\s+(?:me|you|each\s+other)\s+directly\b"),
    re.compile(r"\bdirectly\s+contact\b"),
    re.compile(r"\breach\s+me\s+(?:at|on|via)\b"),
    re.compile(
        r"\bmy\s+(?:personal\s+|private\s+|mobile\s+|phone\s+|cell\s+)?"
        r"(?:number|mobile|phone|cell)\s+is\b"
    ),
    re.compile(
        r"\b(?:give|send|share|text)\s+me\s+your\s+(?:personal\s+|private\s+|phone\s+|mobile\s+)?"
        r"(?:number|e-?mail|phone|mobile|contact\s+details|address)\b"
    ),
    re.compile(
        r"\bwhat(?:'s|\s+is)\s+your\s+(?:personal\s+|private\s+|phone\s+|mobile\s+)?"
        r"(?:number|e-?mail|mobile)\b(?!\s+(?:one|1|two|of)\b)"
    ),
    re.compile(r"\b(?:add|find|follow|dm|message)\s+me\s+on\b"),
    re.compile(r"\b(?:call|text|ring|phone|e-?mail|message|dm)\s+me\s+(?:on|at)\b"),
    re.compile(r"\b(?:text|dm|whatsapp)\s+me\b"),
    re.compile(r"\bpersonal\s+contact\s+(?:details|info|information)\b"),
    re.compile(r"\b(?:don'?t|do\s+not)\s+use\s+(?:this|the)\s+(?:platform|site|app)\b"),
    re.compile(
        r"\b(?:bypass|skip|avoid|get\s+around)\s+(?:this|the)\s+"
        r"(?:platform(?:\s+fees?)?|site|fees?)\b"
    ),
    re.compile(r"\bprivate\s+(?:e-?mail|number|chat)\b"),
    re.compile(r"\bmy\s+(?:personal\s+)?(?:handle|username)\s+is\b"),
    re.compile(r"\bmy\s+profile\s+on\b"),
    re.compile(r"\bmeet\s+(?:me|up)\s+(?:at|outside|off)\b"),
    re.compile(r"\b(?:hire|employ)\s+you\s+(?:directly|direct|privately|myself)\b"),
    re.compile(r"\b(?:hire|employ)\s+(?:directly|privately)\b"),
    re.compile(r"\b(?:cheaper|free|fee[\s\-]?free|no[\s\-]fee)\s+(?:way|method|option|route)\b"),
    re.compile(r"\bwithout\s+(?:this|the)\s+(?:platform|site|app)\b"),
)

_LEET_TABLE = str.maketrans({"0": "o", "1": "i", "3": "e", "4": "a", "5": "s", "7": "t", "@": "a", "$": "s"})
_TOKEN_RE = re.compile(r"[a-z0-9@$]+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class PatternClassifierConfig:
    """Confidence floors and matching knobs."""

    phone_confidence: float = 0.95
    email_confidence: float = 0.90
    platform_confidence: float = 0.85
    request_confidence: float = 0.85
    fuzzy_threshold: float = 88.0
    fuzzy_min_length: int = 6
    extra_platforms: list[str] = field(default_factory=list)
    max_masked_samples: int = 3


def risk_level_for(confidence: float) -> RiskLevel:
    if confidence >= 0.90:
        return "critical"
    if confidence >= 0.80:
        return "high"
    if confidence > 0.0:
        return "medium"
    return "none"


def mask(value: str) -> str:
    """Replace letters and digits so matched contact data is not retained."""
    return re.sub(r"[A-Za-z0-9]", "*", value.strip())


@runtime_checkable
class Classifier(Protocol):
    """Scores outbound message text for contact leakage."""

    def classify(self, text: str) -> Verdict:
        """Return an immutable verdict. Raise ClassifierInconclusive if text cannot be scored."""


class PatternClassifier:
    """Regex and fuzzy-match scorer for contact information leakage."""

    name = "pattern"

    def __init__(self, *, config: PatternClassifierConfig | None = None) -> None:
        self._config = config or PatternClassifierConfig()
        platforms = list(DEFAULT_PLATFORMS)
        platforms.extend(p.lower() for p in self._config.extra_platforms if p)
        self._platforms = tuple(dict.fromkeys(platforms))
        self._platform_word_re = re.compile(
            r"\b(?:" + "|".join(re.escape(p) for p in self._platforms) + r")\b"
        )

    def classify(self, text: str) -> Verdict:
        normalized = self._normalize(text)
        if not normalized.strip():
            return Verdict.allowed()

        hits: dict[str, list[str]] = {}
        confidences = {
            PHONE_NUMBER: self._config.phone_confidence,
            EMAIL_ADDRESS: self._config.email_confidence,
            EXTERNAL_PLATFORM: self._config.platform_confidence,
            OFF_PLATFORM_REQUEST: self._config.request_confidence,
        }

        phones = self._find_phone_numbers(normalized)
        if phones:
            hits[PHONE_NUMBER] = phones
        emails = self._find_all(_EMAIL_PATTERNS, normalized)
        if emails:
            hits[EMAIL_ADDRESS] = emails
        platforms = self._find_platforms(normalized)
        if platforms:
            hits[EXTERNAL_PLATFORM] = platforms
        requests = self._find_all(_OFF_PLATFORM_PATTERNS, normalized)
        if requests:
            hits[OFF_PLATFORM_REQUEST] = requests

        if not hits:
            return Verdict.allowed()

        categories = sorted(
            (
                MatchedCategory(
                    category=category,
                    confidence=confidences[category],
                    match_count=len(found),
                    masked=tuple(mask(item) for item in found[: self._config.max_masked_samples]),
                )
                for category, found in hits.items()
            ),
            key=lambda item: item.confidence,
            reverse=True,
        )
        confidence = max(item.confidence for item in categories)
        return Verdict(
            should_block=True,
            confidence=confidence,
            categories=tuple(categories),
            risk_level=risk_level_for(confidence),
        )

    @staticmethod
    def _normalize(text: str | bytes) -> str:
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ClassifierInconclusive("message bytes are not valid UTF-8") from exc
        if not isinstance(text, str):
            raise ClassifierInconclusive(f"cannot score {type(text).__name__}")
        folded = unicodedata.normalize("NFKC", text)
        folded = _ZERO_WIDTH_RE.sub("", folded)
        return folded.lower().replace("’", "'")

    def _find_phone_numbers(self, text: str) -> list[str]:
        digits_text = _DIGIT_TOKEN_RE.sub(_spell_out_digits, text)
        digits_text = _OH_RE.sub("0", digits_text)
        digits_text = _LETTER_O_RE.sub("0", digits_text)
        digits_text = _ISO_DATE_RE.sub(" ", digits_text)
        digits_text = _DATE_RE.sub(" ", digits_text)

        found: list[str] = []
        for match in _DIGIT_RUN_RE.finditer(digits_text):
            run = match.group(0).rstrip(" .,-(/")
            prefix = digits_text[max(0, match.start() - 30) : match.start()]
            if self._looks_like_phone(run, prefix):
                found.append(run)
        return found

    @staticmethod
    def _looks_like_phone(run: str, prefix: str) -> bool:
        digits = re.sub(r"\D", "", run)
        count = len(digits)
        cued = bool(_PHONE_CUE_RE.search(prefix))
        if count < 10:
            return cued and count >= 6
        if run.startswith("+") or digits.startswith("0") or digits.startswith("44"):
            return True
        if run.isdigit():
            return True
        if _US_SHAPE_RE.fullmatch(run.strip()):
            return True
        return cued

    def _find_platforms(self, text: str) -> list[str]:
        found: list[str] = []
        for pattern in (self._platform_word_re, _PLATFORM_LINK_RE, _PLATFORM_ALIAS_RE, _SIGNAL_RE):
            found.extend(m.group(0) for m in pattern.finditer(text))

        known = {_NON_ALNUM_RE.sub("", item) for item in found}
        for token in _TOKEN_RE.findall(text):
            candidate = token.translate(_LEET_TABLE) if re.search(r"[a-z]", token) else token
            if len(candidate) < self._config.fuzzy_min_length:
                continue
            if any(candidate in item for item in known):
                continue
            platform = self._fuzzy_platform(candidate)
            if platform:
                found.append(token)
                known.add(candidate)

        compact = _NON_ALNUM_RE.sub("", text).translate(_LEET_TABLE)
        for platform in COMPACT_PLATFORMS:
            if platform in known:
                continue
            if platform in compact and not any(platform in item for item in known):
                found.append(platform)
                known.add(platform)
        return found

    def _fuzzy_platform(self, token: str) -> str | None:
        for platform in FUZZY_PLATFORMS:
            if fuzz.ratio(token, platform) >= self._config.fuzzy_threshold:
                return platform
        return None

    @staticmethod
    def _find_all(patterns: Iterable[re.Pattern[str]], text: str) -> list[str]:
        found: list[str] = []
        for pattern in patterns:
            found.extend(m.group(0) for m in pattern.finditer(text))
        return found


__all__ = [
    "Classifier",
    "DEFAULT_PLATFORMS",
    "EMAIL_ADDRESS",
    "EXTERNAL_PLATFORM",
    "FUZZY_PLATFORMS",
    "OFF_PLATFORM_REQUEST",
    "PHONE_NUMBER",
    "PatternClassifier",
    "PatternClassifierConfig",
    "mask",
    "risk_level_for",
]
