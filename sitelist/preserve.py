from __future__ import annotations

import re
import uuid

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)


def remove_and_preserve_html(text: str, pattern: re.Pattern = SCRIPT_BLOCK_RE) -> tuple[str, dict[str, str]]:
    """Swap raw HTML the markdown engine would mangle for inert keys."""
    preserve: dict[str, str] = {}

    def repl(match: re.Match) -> str:
        key = "preserve" + uuid.uuid4().hex
        preserve[key] = match.group(0)
        return key

    return pattern.sub(repl, text), preserve


def restore_preserved_html(html_text: str, preserve: dict[str, str] | None) -> str:
    if not preserve:
        return html_text
    for key, value in preserve.items():
        wrapped = f"<p>{key}</p>"
        if wrapped in html_text:
            html_text = html_text.replace(wrapped, value, 1)
        else:
            html_text = html_text.replace(key, value, 1)
    return html_text
