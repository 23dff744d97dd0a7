"""credaudit: audit credential hashes against lists of known-weak passwords."""

__version__ = "0.1.0"
