from __future__ import annotations

import hashlib


def compute_item_id(link: str | None, title: str) -> str:
    """Stable 64-bit identity of an article, as 16 lowercase hex digits.

    The link is hashed when present and non-empty, the title otherwise. Inputs
    are used verbatim, so callers must pass the same link/title strings every
    time they want the same identity back.
    """
    source = link if link else title
    digest = hashlib.sha256(source.encode("utf-8")).digest()
    return digest[:8].hex()
