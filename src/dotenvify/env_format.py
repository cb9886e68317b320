"""Key/value text parsing and .env formatting.

This module converts between plain text and name/value mappings. It accepts
the loose layouts people paste into files:

    export API_KEY="abc"        # assignment, optional export and quotes
    API_KEY abc                 # two whitespace separated tokens
    API_KEY abc DEBUG 1         # alternating pairs on one line
    API_KEY                     # legacy layout: name on one line,
    abc                         # value on the next

and writes one ``[export ]NAME=VALUE`` line per variable, quoting values that
a shell would otherwise split.

Parsing never raises for malformed content. A trailing name without a value
is collected as a ParseError so the caller can decide what to do with the
partial result.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Scheme prefixes treated as URLs when deciding whether to quote a value
URL_PREFIXES = (
    "http://",
    "https://",
    "ftp://",
    "sftp://",
    "ssh://",
    "git://",
    "file://",
    "mailto:",
    "postgres://",
    "mysql://",
    "mongodb://",
    "redis://",
)

HTTP_PREFIXES = ("http://", "https://")

QUOTE_CHARS = ('"', "'")

_EXPORT_PREFIX = re.compile(r"^export\s+")


@dataclass(frozen=True)
class ParseError:
    """A name with no value left at the end of the input."""

    line_number: int
    name: str

    def __str__(self) -> str:
        return f"Line {self.line_number}: Key '{self.name}' has no value"


@dataclass
class ParseResult:
    """Variables parsed from text plus any dangling-key diagnostics."""

    variables: dict[str, str] = field(default_factory=dict)
    errors: list[ParseError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass
class OutputPolicy:
    """Controls how variables are filtered, ordered, quoted and written."""

    sort_keys: bool = True
    use_export_prefix: bool = False
    lowercase_filter: bool = False
    url_only_filter: bool = False
    overwrite_existing: bool = False
    preserve_names: frozenset[str] = field(default_factory=frozenset)


def parse_name_list(text: str | None) -> frozenset[str]:
    """Parse a comma separated list of variable names.

    Args:
        text: Value such as " API_KEY , DATABASE_URL "

    Returns:
        Set of stripped, non-empty names
    """
    if not text:
        return frozenset()
    return frozenset(name.strip() for name in text.split(",") if name.strip())


def is_url(value: str) -> bool:
    """Check whether a value starts with a known URL scheme."""
    return value.startswith(URL_PREFIXES)


def is_http_url(value: str) -> bool:
    """Check whether a value is an http:// or https:// URL."""
    return value.startswith(HTTP_PREFIXES)


def is_quoted(value: str) -> bool:
    """Check whether a value is wrapped in one matching pair of quotes."""
    return len(value) >= 2 and value[0] in QUOTE_CHARS and value[0] == value[-1]


def strip_quotes(value: str) -> str:
    """Remove exactly one outer pair of matching quotes, if present."""
    if is_quoted(value):
        return value[1:-1]
    return value


def quote_value(value: str) -> str:
    """Wrap a value in double quotes when a shell would need them.

    Already-quoted values are returned untouched so formatting is idempotent.
    """
    if is_quoted(value):
        return value
    if is_url(value) or " " in value:
        return f'"{value}"'
    return value


def _split_assignment(line: str) -> tuple[str, str]:
    line = _EXPORT_PREFIX.sub("", line, count=1)
    key, value = line.split("=", 1)
    return key.strip(), strip_quotes(value.strip())


def parse_env_text(text: str) -> ParseResult:
    """Parse key/value text into a mapping.

    Blank lines and lines starting with '#' are skipped. Each remaining line
    is matched against these layouts, first match wins:

    1. NAME=VALUE, with optional "export " prefix and outer quotes
    2. NAME VALUE (exactly two tokens)
    3. N1 V1 N2 V2 ... (an even number of tokens, at least four)
    4. a bare NAME whose value is the next content line, verbatim

    A later definition of a name replaces an earlier one.

    Args:
        text: Raw file content

    Returns:
        ParseResult with variables and dangling-key errors
    """
    entries = []
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append((line_number, line))

    result = ParseResult()
    index = 0
    while index < len(entries):
        line_number, line = entries[index]
        index += 1

        if "=" in line:
            key, value = _split_assignment(line)
            if not key:
                logger.warning(f"Line {line_number}: skipping assignment with empty name")
                continue
            result.variables[key] = value
            continue

        tokens = line.split()
        if len(tokens) == 2:
            result.variables[tokens[0]] = tokens[1]
        elif len(tokens) >= 4 and len(tokens) % 2 == 0:
            for key, value in zip(tokens[::2], tokens[1::2]):
                result.variables[key] = value
        elif index < len(entries):
            result.variables[line] = entries[index][1]
            index += 1
        else:
            result.errors.append(ParseError(line_number=line_number, name=line))

    logger.debug(
        f"Parsed {len(result.variables)} variables from {len(entries)} lines "
        f"({len(result.errors)} errors)"
    )
    return result


def select_keys(variables: Mapping[str, str], policy: OutputPolicy) -> list[str]:
    """Apply the policy's filters and ordering to the variable names.

    Args:
        variables: Name/value mapping
        policy: Output policy

    Returns:
        Names to emit, in output order
    """
    keys: Iterable[str] = variables.keys()
    if policy.lowercase_filter:
        # str.islower() is False for names without any cased character
        keys = [key for key in keys if not key.islower()]
    if policy.url_only_filter:
        keys = [key for key in keys if is_http_url(variables[key])]
    if policy.sort_keys:
        return sorted(keys)
    return list(keys)


def format_env(variables: Mapping[str, str], policy: OutputPolicy | None = None) -> str:
    """Serialize variables as .env text.

    Args:
        variables: Name/value mapping
        policy: Output policy (defaults to sorted, no export prefix, no filters)

    Returns:
        Newline separated NAME=VALUE lines with a trailing newline, or an
        empty string when nothing survives the filters
    """
    policy = policy or OutputPolicy()
    prefix = "export " if policy.use_export_prefix else ""

    lines = [
        f"{prefix}{key}={quote_value(variables[key])}" for key in select_keys(variables, policy)
    ]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


__all__ = [
    "HTTP_PREFIXES",
    "URL_PREFIXES",
    "OutputPolicy",
    "ParseError",
    "ParseResult",
    "format_env",
    "is_http_url",
    "is_quoted",
    "is_url",
    "parse_env_text",
    "parse_name_list",
    "quote_value",
    "select_keys",
    "strip_quotes",
]
