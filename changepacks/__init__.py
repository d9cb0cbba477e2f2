"""changepacks: version bumps and publishing for multi-language monorepos."""

__version__ = "0.1.0"
