import hashlib


def query_fingerprint(query: str) -> str:
    """Compute a stable key for a query text.

    The key only depends on the text, never on the results, so re-running
    the same query maps to the same key within and across processes.
    """
    return hashlib.sha1(query.encode("utf-8")).hexdigest()[:16]
