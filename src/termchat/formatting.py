"""
Line Formatting for Inbound Frames

Turns received frames into the text lines stored in the message log,
including the mention highlight for the local username.
"""

import time

BELL = "\a"
COLOR_RED = "\033[31m"
COLOR_GRAY = "\033[90m"
COLOR_RESET = "\033[0m"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(timestamp: int) -> str:
    """Format epoch seconds in local time."""
    return time.strftime(TIMESTAMP_FORMAT, time.localtime(timestamp))


def highlight_mentions(body: str, username: str, quiet: bool = False) -> str:
    """
    Highlight every "@<username>" in a message body.

    Each match is wrapped in a bell, a color and a reset. The scan is a
    single left-to-right pass; a matched span is consumed whole and never
    rescanned. Matching is a case-sensitive prefix match, so "@alicex"
    highlights its "@alice" part.

    Args:
        body: Inbound message text
        username: Local username
        quiet: If True, return body unchanged

    Returns:
        The body with mentions highlighted.
    """
    if quiet or not username:
        return body

    mention = "@" + username
    parts = []
    pos = 0
    while True:
        found = body.find(mention, pos)
        if found < 0:
            break
        parts.append(body[pos:found])
        parts.append(f"{BELL}{COLOR_RED}{mention}{COLOR_RESET}")
        pos = found + len(mention)
    parts.append(body[pos:])
    return "".join(parts)


def format_chat_line(
    timestamp: int,
    sender: str,
    body: str,
    local_username: str,
    quiet: bool = False,
) -> str:
    """Format a chat message as "[timestamp] sender: body"."""
    text = highlight_mentions(body, local_username, quiet)
    return f"[{format_timestamp(timestamp)}] {sender}: {text}"


def format_system_line(body: str) -> str:
    """Format a dimmed server notice."""
    return f"{COLOR_GRAY}[SYSTEM] {body}{COLOR_RESET}"


def format_disconnect_line(body: str) -> str:
    """Format a highlighted disconnect notice."""
    return f"{COLOR_RED}[DISCONNECT] {body}{COLOR_RESET}"
