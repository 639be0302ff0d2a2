"""myrpi — idempotent developer-environment provisioning for a Raspberry Pi."""

__version__ = "0.1.0"
