"""Line splitting shared by the file readers and the diff engine."""


def split_lines(content: str) -> list[str]:
    """Split on ``\\n`` only, dropping a trailing ``\\r`` from each line.

    A final newline does not produce an empty last line, and unlike
    ``str.splitlines`` form feeds and other separators stay inside lines.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]
