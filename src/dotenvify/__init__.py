"""dotenvify - turn key/value configuration into shell-ready .env files

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Security by design (no credentials stored, tokens borrowed from az CLI)
- Fail fast with helpful guidance

dotenvify reformats ad-hoc lists of name/value pairs, or fetches an Azure
DevOps variable group, and writes the result as KEY=VALUE lines.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
