"""Actionable error catalog for hostupdater."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_root": {
        "what": "This tool must run with administrative rights.",
        "next": "Re-run it as root, for example with `sudo hostupdater`.",
    },
    "no_connectivity": {
        "what": "No network connection. Tried: {targets}.",
        "next": "Check the network and DNS configuration, then retry.",
    },
    "insufficient_space": {
        "what": "Not enough free space on {path} (free: {free_mb} MB, required: {min_mb} MB).",
        "next": "Free up disk space or lower `--min-free-mb`.",
    },
    "lock_timeout": {
        "what": "Package manager still busy after {timeout}s.",
        "next": "Wait for the running package operation to finish or raise `--timeout`.",
    },
    "index_refresh_failed": {
        "what": "Refreshing the package index failed.",
        "next": "Inspect the APT output in the log file and check /etc/apt/sources.list.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
