"""
Exceptions raised by the bias report pipeline.
"""


def _location(path, line_number) -> str:
    if line_number is None:
        return str(path) if path is not None else ""
    if path is None:
        return f"line {line_number}"
    return f"{path}:{line_number}"


class ParseError(ValueError):
    """A raw input line could not be parsed into a typed record."""

    def __init__(self, reason: str, line_number: int, line: str, path=None):
        self.reason = reason
        self.line_number = line_number
        self.line = line
        self.path = path
        super().__init__(reason, line_number, line)

    def __str__(self):
        return f"{_location(self.path, self.line_number)}: {self.reason}: {self.line!r}"


class FormatError(ValueError):
    """A movie title does not end with a parenthesised release year."""

    def __init__(self, title: str, line_number=None, path=None):
        self.title = title
        self.line_number = line_number
        self.path = path
        super().__init__(title)

    def __str__(self):
        message = f"No trailing (YYYY) release year in title: {self.title!r}"
        location = _location(self.path, self.line_number)
        return f"{location}: {message}" if location else message


class DimensionMismatch(ValueError):
    """Two sequences that must be compared element-wise differ in length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Length mismatch: {expected} true values vs {actual} predictions")
