import xxhash

_FINGERPRINT_PREFIX_LENGTH = 100
_FINGERPRINT_SEED = 0


def fingerprint(text: str, path: str = "", *, seed: int = _FINGERPRINT_SEED) -> str:
    """
    Computes the content fingerprint of a text region.

    Only a bounded prefix of the text takes part, so appending content far
    down a long paragraph does not make it look like a new region. The
    structural path keeps identical text in different places apart.

    Args:
        text: The extracted region text.
        path: The structural path signature of the region's container.
        seed: The seed for the hash algorithm.

    Returns:
        The hex digest of the xxhash of prefix and path.
    """
    content = text[:_FINGERPRINT_PREFIX_LENGTH].strip()
    return xxhash.xxh64(f"{content}{path}".encode("utf-8"), seed=seed).hexdigest()
