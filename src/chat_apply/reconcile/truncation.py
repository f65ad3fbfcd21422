"""Filling elided regions of a truncated answer from the original file."""

import re

from chat_apply.parsing.markers import is_elision_line

ANCHOR_WINDOW = 10

_LINE_BREAK_RE = re.compile(r"\r?\n")


def find_line_sequence(lines: list[str], sequence: list[str], start: int) -> int:
    """Index of ``sequence`` in ``lines`` at or after ``start``, or -1.

    An exact match is preferred; failing that, lines are compared with
    surrounding whitespace stripped.
    """
    if not sequence or start >= len(lines):
        return -1
    last_start = len(lines) - len(sequence)
    for index in range(start, last_start + 1):
        if lines[index:index + len(sequence)] == sequence:
            return index
    stripped = [line.strip() for line in sequence]
    for index in range(start, last_start + 1):
        if [line.strip() for line in lines[index:index + len(sequence)]] == stripped:
            return index
    return -1


def _split_blocks(lines: list[str]) -> list[tuple[bool, list[str]]]:
    """Group lines into (is_elision, lines) runs; each elision line is its own run."""
    blocks: list[tuple[bool, list[str]]] = []
    buffer: list[str] = []
    for line in lines:
        if is_elision_line(line):
            if buffer:
                blocks.append((False, buffer))
                buffer = []
            blocks.append((True, [line]))
        else:
            buffer.append(line)
    if buffer:
        blocks.append((False, buffer))
    return blocks


def process_truncated_content(new_text: str, original_text: str) -> str:
    """Replace every elision marker in ``new_text`` with the lines it stands for.

    After each code run the position in the original is advanced past the
    longest suffix of that run (up to ANCHOR_WINDOW lines) found in the
    original. An elision is filled with original lines from that position
    up to where the longest prefix of the next code run is found, or to
    the end of the original when there is no next run or it cannot be
    located.
    """
    new_lines = _LINE_BREAK_RE.split(new_text)
    original_lines = _LINE_BREAK_RE.split(original_text)
    blocks = _split_blocks(new_lines)

    output: list[str] = []
    position = 0

    for index, (is_elision, lines) in enumerate(blocks):
        if not is_elision:
            output.extend(lines)
            suffix = lines[-ANCHOR_WINDOW:]
            for length in range(len(suffix), 0, -1):
                found = find_line_sequence(original_lines, suffix[len(suffix) - length:], position)
                if found != -1:
                    position = found + length
                    break
            continue

        fill_end = len(original_lines)
        if index + 1 < len(blocks) and not blocks[index + 1][0]:
            prefix = blocks[index + 1][1][:ANCHOR_WINDOW]
            for length in range(len(prefix), 0, -1):
                found = find_line_sequence(original_lines, prefix[:length], position)
                if found != -1:
                    fill_end = found
                    break

        if fill_end > position:
            output.extend(original_lines[position:fill_end])
        position = max(position, fill_end)

    result = "\n".join(output)
    if original_text.endswith("\n") and not result.endswith("\n"):
        result += "\n"
    return result
