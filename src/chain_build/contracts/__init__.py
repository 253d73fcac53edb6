"""
Schema types for the build configuration.

These are the shapes an external build/compile tool reads: which network to
deploy to, which solc to invoke and with which flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from collections.abc import Mapping

WILDCARD_NETWORK_ID = "*"

# Oldest to newest, as accepted by solc's --evm-version.
EVM_VERSIONS: tuple[str, ...] = (
    "homestead",
    "tangerineWhistle",
    "spuriousDragon",
    "byzantium",
    "constantinople",
    "petersburg",
    "istanbul",
    "berlin",
    "london",
    "paris",
    "shanghai",
    "cancun",
    "prague",
)

FIRST_PUSH0_EVM_VERSION = "shanghai"


def supports_push0(evm_version: str) -> bool:
    """True if code compiled for `evm_version` may contain PUSH0."""
    if evm_version not in EVM_VERSIONS:
        raise ValueError(f"Unknown EVM version: {evm_version}")
    return EVM_VERSIONS.index(evm_version) >= EVM_VERSIONS.index(FIRST_PUSH0_EVM_VERSION)


@dataclass(frozen=True)
class NetworkEndpoint:
    """Node a deployment connects to."""

    host: str
    port: int
    network_id: str = WILDCARD_NETWORK_ID

    def matches(self, network_id: str | int) -> bool:
        if self.network_id == WILDCARD_NETWORK_ID:
            return True
        return self.network_id == str(network_id)


@dataclass(frozen=True)
class OptimizerSettings:
    enabled: bool
    # Only meaningful when enabled; carried unchanged otherwise.
    runs: int


@dataclass(frozen=True)
class CompilerSettings:
    evm_version: str
    optimizer: OptimizerSettings


@dataclass(frozen=True)
class CompilerSpec:
    """A solc release plus the flags to pass it."""

    version: str
    settings: CompilerSettings


@dataclass(frozen=True)
class BuildConfiguration:
    """Everything the build tool needs: networks by name and the solc spec."""

    networks: Mapping[str, NetworkEndpoint]
    solc: CompilerSpec

    def __post_init__(self) -> None:
        # Read-only snapshot of the mapping passed in.
        object.__setattr__(self, "networks", MappingProxyType(dict(self.networks)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BuildConfiguration):
            return NotImplemented
        return dict(self.networks) == dict(other.networks) and self.solc == other.solc

    def __hash__(self) -> int:
        return hash((tuple(sorted(self.networks.items())), self.solc))

    def network(self, name: str) -> NetworkEndpoint:
        try:
            return self.networks[name]
        except KeyError:
            known = ", ".join(sorted(self.networks)) or "<none>"
            raise KeyError(f"Unknown network '{name}' (known: {known})") from None
