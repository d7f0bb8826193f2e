"""Environment compatibility and preflight checks for the routing engine."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from sparrow_routing.config import ConfigurationError, check_settings, load_settings

MIN_PYTHON = (3, 10)


@dataclass
class DoctorResult:
    ok: bool
    messages: List[str]


def _python_version_tuple() -> Tuple[int, int, int]:
    v = sys.version_info
    return (v.major, v.minor, v.micro)


def _check_python_version(errors: List[str]) -> None:
    current = _python_version_tuple()
    if current[:2] < MIN_PYTHON:
        errors.append(
            f"Python {current[0]}.{current[1]} is unsupported. "
            f"Use Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]} or newer."
        )


def _check_provider_urls(env: Mapping[str, str], errors: List[str]) -> None:
    for slot in ("PRIMARY", "SECONDARY", "TERTIARY"):
        key = f"{slot}_ROUTING_URL"
        raw = env.get(key, "").strip()
        if not raw:
            continue
        parsed = urlparse(raw)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            errors.append(f"`{key}` must be an http(s) URL, got `{raw}`.")


def _check_routing_settings(env: Mapping[str, str], errors: List[str], warnings: List[str]) -> None:
    try:
        settings = load_settings(env)
    except ConfigurationError as exc:
        errors.append(str(exc))
        return

    setting_errors, setting_warnings = check_settings(settings)
    errors.extend(setting_errors)
    warnings.extend(setting_warnings)

    if settings.use_stub_providers:
        warnings.append("USE_STUB_PROVIDERS=true: routes are synthetic straight lines.")


def run_doctor(env: Optional[Mapping[str, str]] = None) -> DoctorResult:
    env_map: Mapping[str, str] = os.environ if env is None else env
    errors: List[str] = []
    warnings: List[str] = []

    _check_python_version(errors)
    _check_provider_urls(env_map, errors)
    _check_routing_settings(env_map, errors, warnings)

    messages: List[str] = []
    if errors:
        messages.append("Doctor found configuration issues:")
        for i, msg in enumerate(errors, 1):
            messages.append(f"{i}. {msg}")
        messages.append("Fix the items above and rerun `python scripts/doctor.py`.")
    else:
        messages.append("Doctor checks passed.")

    if warnings:
        messages.append("Warnings:")
        for i, msg in enumerate(warnings, 1):
            messages.append(f"- {msg}")

    return DoctorResult(ok=not errors, messages=messages)


def main() -> int:
    result = run_doctor()
    print("\n".join(result.messages))
    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
