"""Formats probe results as colored terminal output or structured JSON.

- **Terminal**: ANSI-colored output grouped by phase, with a summary line
  and, when something failed, a list of likely causes.
- **JSON**: ``summary``, ``issues`` and ``results`` keys for CI pipelines.
"""

import json
import sys
from typing import Any, Dict, List, Tuple


# Known failure patterns: (title, message substring, hint)
_KNOWN_ISSUES: List[Tuple[str, str, str]] = [
    (
        "Entitlement not listed after create",
        "not returned by list",
        "Check that the list endpoint is scoped to the same project the entitlement was created in",
    ),
    (
        "Definition does not echo the catalog source",
        "definition.id",
        "The server must return the catalog source id as definition.id of the entitlement",
    ),
    (
        "Entitlement still listed after delete",
        "still listed",
        "Deletion may be asynchronous on this server; re-run the read after a short delay",
    ),
    (
        "Authentication rejected",
        "status 401",
        "Verify the access or refresh token and that it is valid for this organization",
    ),
]


class ProbeResult:
    """A single lifecycle check result.

    Attributes:
        name:    Human-readable check name (e.g. ``Create entitlement``).
        status:  One of PASS, FAIL, WARN, SKIP, ERROR.
        message: Optional detail about the outcome.
        phase:   Phase label used to group output.
    """

    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    SKIP = "skip"
    ERROR = "error"

    def __init__(self, name: str, status: str, message: str = "", phase: str = ""):
        self.name = name
        self.status = status
        self.message = message
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON output.  Omits empty fields."""
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
        }
        if self.message:
            d["message"] = self.message
        if self.phase:
            d["phase"] = self.phase
        return d

    def __repr__(self):
        return f"ProbeResult({self.name!r}, {self.status!r})"


def colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


_STATUS_SYMBOLS = {
    ProbeResult.PASS: ("PASS", "green"),
    ProbeResult.FAIL: ("FAIL", "red"),
    ProbeResult.WARN: ("WARN", "yellow"),
    ProbeResult.SKIP: ("SKIP", "dim"),
    ProbeResult.ERROR: ("ERR ", "red"),
}


def summarize(results: List[ProbeResult]) -> Dict[str, int]:
    def count(status):
        return sum(1 for r in results if r.status == status)

    return {
        "total": len(results),
        "passed": count(ProbeResult.PASS),
        "failed": count(ProbeResult.FAIL),
        "warnings": count(ProbeResult.WARN),
        "skipped": count(ProbeResult.SKIP),
        "errors": count(ProbeResult.ERROR),
    }


def build_issues(results: List[ProbeResult]) -> List[Dict[str, Any]]:
    """Match failures against known patterns; anything else is reported as unmatched."""
    failures = [r for r in results if r.status in (ProbeResult.FAIL, ProbeResult.ERROR)]
    issues = []
    matched: set = set()
    for title, substr, hint in _KNOWN_ISSUES:
        affected = [r for r in failures if substr.lower() in r.message.lower()]
        if affected:
            matched.update(id(r) for r in affected)
            issues.append({"title": title, "hint": hint, "affected_checks": len(affected)})

    unmatched = [r for r in failures if id(r) not in matched]
    if unmatched:
        issues.append({
            "title": f"{len(unmatched)} failure(s) not matched to a known cause",
            "hint": "Review the individual check output above.",
            "affected_checks": len(unmatched),
        })
    return issues


def print_results(
    results: List[ProbeResult],
    json_output: bool = False,
    version: str = "",
    timestamp: str = "",
):
    """Print the probe report in terminal or JSON format."""
    if json_output:
        _print_json(results, version=version, timestamp=timestamp)
    else:
        _print_terminal(results, version=version, timestamp=timestamp)


def _print_terminal(results: List[ProbeResult], version: str = "", timestamp: str = ""):
    summary = summarize(results)

    print()
    print(colorize("Catalog Source Entitlement Lifecycle Check", "bold"))
    print(colorize("=" * 50, "dim"))
    meta_parts = []
    if version:
        meta_parts.append(f"vra-entitlements {version}")
    if timestamp:
        meta_parts.append(timestamp)
    if meta_parts:
        print(colorize("  " + "  |  ".join(meta_parts), "dim"))

    current_phase = ""
    for result in results:
        if result.phase and result.phase != current_phase:
            current_phase = result.phase
            print()
            print(colorize(f"  {current_phase}", "bold"))
            print(colorize("  " + "-" * 40, "dim"))

        symbol, color = _STATUS_SYMBOLS.get(result.status, ("??? ", "dim"))
        print(f"  [{colorize(symbol, color)}] {result.name}")
        if result.message:
            print(f"         {colorize(result.message, 'dim')}")

    print()
    print(colorize("=" * 50, "dim"))
    parts = [f"{summary['passed']} passed"]
    if summary["failed"]:
        parts.append(colorize(f"{summary['failed']} failed", "red"))
    if summary["errors"]:
        parts.append(colorize(f"{summary['errors']} errors", "red"))
    if summary["warnings"]:
        parts.append(f"{summary['warnings']} warnings")
    if summary["skipped"]:
        parts.append(f"{summary['skipped']} skipped")
    parts.append(f"{summary['total']} total")
    print("  " + ", ".join(parts))

    for issue in build_issues(results):
        print(f"  {colorize('!', 'red')} {issue['title']} ({issue['affected_checks']} affected)")
        print(f"    {colorize(issue['hint'], 'dim')}")
    print()


def _print_json(results: List[ProbeResult], version: str = "", timestamp: str = ""):
    output = {
        "vra_entitlements_version": version,
        "timestamp": timestamp,
        "summary": summarize(results),
        "issues": build_issues(results),
        "results": [r.to_dict() for r in results],
    }
    print(json.dumps(output, indent=2))
