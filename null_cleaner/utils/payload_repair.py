"""Repair and parse loosely-encoded JSON payload text.

Upstream producers wrote the `pf` payload in several shapes:
- plain JSON: {"he":"x","hm":null}
- JSON re-encoded as a quoted string: "{\"he\":\"x\"}" (possibly pretty-printed)
- JSON with stray or repeated escaping: {\"he\":\"null\"}, {\\"he\\":\\"null\\"}
- JSON whose quoted null token is itself unparseable

parse_payload() walks a fixed ladder and returns the first success:
1. unwrap an outer quote pair around {...} / [...] (decoded as a JSON string
   literal when possible, otherwise unescaped once)
2. reject anything that does not start with { or [ (NOT_JSON_LIKE)
3. strict json.loads
4. aggressive repair: peel one level of \" / \\ escaping at a time, trying a
   strict parse after each level; as a last resort rewrite quoted "null"
   tokens in value position to null and parse once more
5. otherwise ParseFailure(INVALID_JSON) carrying the parser error

Well-formed JSON goes straight to the strict parse untouched, and a quoted
"null" is only rewritten when nothing else makes the text parse.
"""
import json
import re
from enum import Enum
from typing import Any, Iterator, Optional, Union


class RepairStage(str, Enum):
    STRICT = "strict"
    UNWRAPPED = "unwrapped"
    REPAIRED = "repaired"


class FailureReason(str, Enum):
    NOT_JSON_LIKE = "not_json_like"
    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"


_CLOSERS = {'{': '}', '[': ']'}
MAX_UNESCAPE_DEPTH = 4

# one level of backslash escaping: \" -> " and \\ -> \
_ESCAPED_CHAR_RE = re.compile(r'\\(["\\])')
# "null" only in value position, so a key literally named "null" survives
_QUOTED_NULL_RE = re.compile(r'([:\[,]\s*)"\s*null\s*"(?=\s*[,\]}])', re.IGNORECASE)


class ParsedPayload:
    ok = True

    def __init__(self, value: Any, stage: RepairStage):
        self.value = value
        self.stage = stage

    def __repr__(self):
        return f'ParsedPayload(stage={self.stage.value}, value={self.value!r})'


class ParseFailure:
    ok = False

    def __init__(self, reason: FailureReason, detail: Optional[str] = None, identity: Optional[str] = None):
        self.reason = reason
        self.detail = detail
        self.identity = identity

    def describe(self) -> str:
        msg = f'{self.reason.value}'
        if self.detail:
            msg += f': {self.detail}'
        return msg

    def __repr__(self):
        return f'ParseFailure(reason={self.reason.value}, identity={self.identity!r}, detail={self.detail!r})'


ParseResult = Union[ParsedPayload, ParseFailure]


def unescape_once(text: str) -> str:
    return _ESCAPED_CHAR_RE.sub(r'\1', text)


def _is_bracketed(text: str) -> bool:
    return bool(text) and text[0] in _CLOSERS and text[-1] == _CLOSERS[text[0]]


def unwrap_quoted(text: str) -> Optional[str]:
    """Return the inner text of "{...}" / "[...]", or None when text is not wrapped."""
    if len(text) < 4 or text[0] != '"' or text[-1] != '"':
        return None
    inner = text[1:-1].strip()
    if not _is_bracketed(inner):
        return None
    try:
        decoded = json.loads(text)
    except ValueError:
        return unescape_once(inner)
    if isinstance(decoded, str) and _is_bracketed(decoded.strip()):
        return decoded.strip()
    return unescape_once(inner)


def unescape_levels(text: str, max_depth: int = MAX_UNESCAPE_DEPTH) -> Iterator[str]:
    """Yield text with one, two, ... levels of escaping removed until nothing changes."""
    current = text
    for _ in range(max_depth):
        peeled = unescape_once(current)
        if peeled == current:
            return
        current = peeled
        yield current


def rewrite_quoted_nulls(text: str) -> str:
    return _QUOTED_NULL_RE.sub(r'\1null', text)


def parse_payload(raw: Any, identity: Optional[str] = None) -> ParseResult:
    """Parse raw payload text into a JSON value, repairing common encoding damage."""
    if raw is None:
        return ParseFailure(FailureReason.NOT_JSON_LIKE, 'payload is empty', identity)
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode('utf-8', errors='replace')
    if not isinstance(raw, str):
        return ParseFailure(FailureReason.NOT_JSON_LIKE, f'payload is {type(raw).__name__}, not text', identity)

    text = raw.strip()
    stage = RepairStage.STRICT
    unwrapped = unwrap_quoted(text)
    if unwrapped is not None:
        text = unwrapped
        stage = RepairStage.UNWRAPPED

    if not text or text[0] not in _CLOSERS:
        return ParseFailure(FailureReason.NOT_JSON_LIKE, 'payload does not start with { or [', identity)

    try:
        return ParsedPayload(json.loads(text), stage)
    except ValueError:
        pass

    repaired = text
    for repaired in unescape_levels(text):
        try:
            return ParsedPayload(json.loads(repaired), RepairStage.REPAIRED)
        except ValueError:
            continue

    # last resort: every quoted "null" value becomes null, not only he/hm
    try:
        return ParsedPayload(json.loads(rewrite_quoted_nulls(repaired)), RepairStage.REPAIRED)
    except ValueError as e:
        return ParseFailure(FailureReason.INVALID_JSON, str(e), identity)


def parse_object_payload(raw: Any, identity: Optional[str] = None) -> ParseResult:
    """Like parse_payload() but the parsed value must be a JSON object."""
    result = parse_payload(raw, identity)
    if result.ok and not isinstance(result.value, dict):
        return ParseFailure(FailureReason.NOT_AN_OBJECT,
                            f'payload parsed to {type(result.value).__name__}', identity)
    return result


def serialize_payload(payload: Any) -> str:
    """Canonical text form written back into the payload bin."""
    return json.dumps(payload, ensure_ascii=False, separators=(',', ':'))
