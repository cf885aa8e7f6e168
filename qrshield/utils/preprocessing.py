def normalize_payload(text: str) -> str:
    """
    Make decoded QR text safe to analyse.

    Content is left untouched (no stripping: leading characters decide the
    payload type). Lone surrogates, which a broken decoder can leave behind,
    are replaced so the text is always valid UTF-8.
    """
    text = text or ""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        text = text.encode("utf-8", errors="replace").decode("utf-8")
    return text
