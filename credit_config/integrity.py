"""
Registry integrity -- content hash pinning for published registries.

A caller that recorded the content hash of a registry version (in a
``RegistryBinding`` or an approved pin) can verify that the definitions it
loads today still hash to the same value before replaying a computation.
"""

from __future__ import annotations

from collections.abc import Iterable

from credit_kernel.domain.metrics import (
    MetricDefinition,
    RegistryVersion,
    compute_registry_content_hash,
)
from credit_kernel.exceptions import ConfigIntegrityError


def verify_content_hash(
    version: RegistryVersion,
    expected: str,
    definitions: Iterable[MetricDefinition] | None = None,
) -> None:
    """Verify a registry version against a pinned content hash.

    When ``definitions`` are given the hash is recomputed from them;
    otherwise the version's stored ``content_hash`` is compared.

    Raises:
        ConfigIntegrityError: If the hash does not match the pin.
    """
    actual = (
        compute_registry_content_hash(definitions)
        if definitions is not None
        else version.content_hash
    )
    if actual != expected:
        raise ConfigIntegrityError(
            subject=f"registry version '{version.version_name}'",
            expected_hash=expected,
            actual_hash=actual or "<none>",
        )
