"""Weak-password hash index.

Public API:
    HashIndex       : deduplicated, case-insensitive hash -> cleartext map
    WordlistLoader  : hashes wordlist sources into a HashIndex
    HashFormat      : pluggable hash function + digest shape
    get_hash_format : registry lookup ("nt", "sha1")
"""
from credaudit.index.hash_index import HashIndex
from credaudit.index.hashing import HashFormat, get_hash_format, normalize_hash
from credaudit.index.loader import WordlistLoader

__all__ = ["HashFormat", "HashIndex", "WordlistLoader", "get_hash_format", "normalize_hash"]
