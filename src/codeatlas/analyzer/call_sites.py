"""External-service, persistence and route-registration call sites (regex based)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from codeatlas.models import ExternalCallSite

_MAX_URL_DETAIL = 80
_MAX_SNIPPET_DETAIL = 60


@dataclass(frozen=True)
class ServiceSignature:
    """How one external service shows up in source text."""

    service: str
    hosts: tuple[str, ...]
    patterns: tuple[re.Pattern[str], ...] = ()


# Order matters: the first signature whose host fragment matches a URL wins.
SERVICE_REGISTRY: tuple[ServiceSignature, ...] = (
    ServiceSignature(
        "github",
        ("api.github.com",),
        (re.compile(r"new\s+Octokit\s*\("), re.compile(r"\boctokit\.(?:rest|request|graphql)\b")),
    ),
    ServiceSignature("vercel", ("api.vercel.com",)),
    ServiceSignature(
        "supabase",
        ("supabase.co", "supabase.io"),
        (
            re.compile(r"\bsupabase\.(?:from|rpc|channel)\s*\("),
            re.compile(r"\bsupabase\.(?:auth|storage)\.\w+"),
            re.compile(r"createClient\s*<.*Database"),
        ),
    ),
    ServiceSignature(
        "openai",
        ("api.openai.com",),
        (
            re.compile(
                r"\bopenai\.(?:chat|completions|embeddings|audio|images|responses|models)\b"
            ),
            re.compile(r"new\s+OpenAI\s*\("),
        ),
    ),
    ServiceSignature(
        "anthropic",
        ("api.anthropic.com",),
        (
            re.compile(r"\banthropic\.(?:messages|completions|beta)\b"),
            re.compile(r"new\s+Anthropic\s*\("),
        ),
    ),
    ServiceSignature("helicone", ("helicone.ai",), (re.compile(r"helicone", re.IGNORECASE),)),
    ServiceSignature(
        "deepgram", ("api.deepgram.com",), (re.compile(r"\bdeepgram\.\w+", re.IGNORECASE),)
    ),
    ServiceSignature("sentry", ("sentry.io",), (re.compile(r"\bSentry\.\w+\s*\("),)),
    ServiceSignature(
        "upstash",
        ("upstash.io",),
        (re.compile(r"\bRedis\.fromEnv\s*\("), re.compile(r"new\s+Ratelimit\s*\(")),
    ),
    ServiceSignature("cloudflare", ("cloudflare.com", "workers.dev")),
    ServiceSignature(
        "aws",
        ("amazonaws.com",),
        (re.compile(r"new\s+(?:S3|DynamoDB|SQS|SNS|Lambda|EC2|SES)Client\s*\("),),
    ),
)

# Absolute-URL HTTP calls: fetch('https://...'), axios.get(`https://...`), ...
_HTTP_CALL_RE = re.compile(
    r"\b(?:fetch|axios(?:\.\w+)?|ky(?:\.\w+)?|got(?:\.\w+)?)\s*\(\s*[`'\"](https?://[^`'\"\s]+)"
)

# Persistence keywords, reported in this order.
_DB_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\.select\s*\("), "SELECT"),
    (re.compile(r"\.insert\s*\("), "INSERT"),
    (re.compile(r"\.update\s*\("), "UPDATE"),
    (re.compile(r"\.delete\s*\("), "DELETE"),
    (re.compile(r"\bpool\.query\s*\("), "RAW_QUERY"),
    (re.compile(r"\.execute\s*\("), "EXECUTE"),
    (re.compile(r"drizzle|pgTable|createTable"), "SCHEMA"),
)

# Express / Hono style registrations: app.get('/x', ...), router.post(...).
_ROUTE_REGISTRATION_RE = re.compile(
    r"\b(?:app|router|route|api|server)\.(get|post|put|patch|delete)\s*\(\s*[`'\"]"
)


def _line_at(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def identify_service(url: str) -> str:
    """Canonical service id for an absolute URL.

    Known hosts map through :data:`SERVICE_REGISTRY`; anything else becomes
    its registrable domain (the last two host labels), lower-cased.
    """
    lowered = url.lower()
    for signature in SERVICE_REGISTRY:
        if any(host in lowered for host in signature.hosts):
            return signature.service
    try:
        hostname = urlsplit(url).hostname or ""
    except ValueError:
        hostname = ""
    if not hostname:
        return "unknown"
    return ".".join(hostname.split(".")[-2:])


def extract_external_calls(content: str) -> list[ExternalCallSite]:
    """Find external-service references: HTTP calls first, then SDK usage."""
    calls: list[ExternalCallSite] = []

    for m in _HTTP_CALL_RE.finditer(content):
        url = m.group(1)
        calls.append(
            ExternalCallSite(
                service=identify_service(url),
                detail=url[:_MAX_URL_DETAIL],
                line=_line_at(content, m.start()),
            )
        )

    for signature in SERVICE_REGISTRY:
        for pattern in signature.patterns:
            for m in pattern.finditer(content):
                calls.append(
                    ExternalCallSite(
                        service=signature.service,
                        detail=m.group(0)[:_MAX_SNIPPET_DETAIL],
                        line=_line_at(content, m.start()),
                    )
                )

    return calls


def extract_db_operations(content: str) -> list[str]:
    """Persistence operations mentioned in *content*, de-duplicated."""
    return [op for pattern, op in _DB_PATTERNS if pattern.search(content)]


def extract_route_methods(content: str) -> list[str]:
    """HTTP methods registered through ``app.get(...)``-style calls, in first-seen order."""
    methods = (m.group(1).upper() for m in _ROUTE_REGISTRATION_RE.finditer(content))
    return list(dict.fromkeys(methods))
