"""
voucher_config -- configuration entrypoint for the voucher workflow kernel.

Responsibility:
    Provides ``load_settings()``, the one way a process obtains its
    database URL, log level, notification timeout and default BAC quorum.

Architecture position:
    Configuration -- sits beside ``voucher_kernel``.  The kernel never
    imports from ``voucher_config``; callers pass loaded values in.

Failure modes:
    - ``ValueError`` naming the offending key for invalid values.
    - ``FileNotFoundError`` / ``yaml.YAMLError`` for a bad settings file.
"""

from voucher_config.loader import ENV_OVERRIDES, KernelSettings, load_settings

__all__ = ["ENV_OVERRIDES", "KernelSettings", "load_settings"]
