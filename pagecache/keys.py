"""Backend key derivation."""

import hashlib


def hash_identifier(identifier: str) -> str:
    """Return the hex SHA-256 digest of a logical identifier."""
    # surrogatepass keeps lone surrogates hashable
    return hashlib.sha256(identifier.encode("utf-8", "surrogatepass")).hexdigest()


def derive_key(identifier: str, suffix: str = "", prefix: str = "") -> str:
    """Build the backend key for an identifier.

    The identifier is hashed so its length and characters never hit backend
    key limits. The suffix lets one identifier hold several independently
    cached facets (``"pdf"``, ``"html"``, ...).

    Args:
        identifier: Logical identifier, typically a request path
        suffix: Optional facet appended after the hash
        prefix: Namespace prepended before the hash

    Returns:
        ``prefix + sha256(identifier) + suffix``
    """
    return f"{prefix}{hash_identifier(identifier)}{suffix or ''}"
