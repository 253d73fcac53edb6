"""
Build configuration for the contracts toolchain.

Local development node plus the solc release and flags used to compile.
"""

from chain_build.contracts import (
    BuildConfiguration,
    CompilerSettings,
    CompilerSpec,
    NetworkEndpoint,
    OptimizerSettings,
)

SOLC_VERSION = "0.8.21"
# Newest target that doesn't emit PUSH0.
EVM_VERSION = "paris"


def load() -> BuildConfiguration:
    """Return the build configuration."""

    return BuildConfiguration(
        networks={
            "development": NetworkEndpoint(
                host="127.0.0.1",
                port=7545,
                network_id="*",  # any network id
            ),
        },
        solc=CompilerSpec(
            version=SOLC_VERSION,
            settings=CompilerSettings(
                evm_version=EVM_VERSION,
                optimizer=OptimizerSettings(enabled=True, runs=200),
            ),
        ),
    )
