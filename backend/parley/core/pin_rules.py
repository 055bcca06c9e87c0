"""Pin Rules — CID normalization shared by the request schema and the pin registry.

Invariants:
    - pin, unpin and lookups all key on the same normalized CID
"""


def normalize_cid(cid: str) -> str:
    """Strip surrounding whitespace; CIDs never contain any."""
    return cid.strip()
