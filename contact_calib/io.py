from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from contact_calib.errors import TrajectoryError


STORAGE_SUFFIXES = ('.mot', '.sto')
END_HEADER = 'endheader'
WHITESPACE = ' '


@dataclass
class Table:
    column_labels: list[str]
    time_s: np.ndarray  # shape (T,)
    data: np.ndarray  # shape (T, C)
    in_degrees: bool = False

    def column(self, label: str) -> np.ndarray:
        try:
            return self.data[:, self.column_labels.index(label)]
        except ValueError:
            raise KeyError(f"Column '{label}' not found. Available: {self.column_labels}") from None

    def columns(self) -> dict[str, np.ndarray]:
        return {label: self.data[:, i] for i, label in enumerate(self.column_labels)}


def _detect_delimiter(header_line: str) -> str:
    if '\t' in header_line:
        return WHITESPACE
    semicolons = header_line.count(';')
    commas = header_line.count(',')
    if semicolons == 0 and commas == 0:
        return WHITESPACE
    return ';' if semicolons >= commas else ','


def _parse_number(s: str) -> float:
    return float(s.strip().replace(',', '.'))


def _find_col(headers: list[str], candidates: Iterable[str]) -> int:
    candidates = [c.lower() for c in candidates]
    for i, h in enumerate(headers):
        if h.lower() in candidates:
            return i
    return -1


def _split(line: str, delimiter: str) -> list[str]:
    if delimiter == WHITESPACE:
        return line.split()
    return [p.strip() for p in line.split(delimiter)]


def _parse_storage_header(lines: list[str]) -> tuple[int, bool]:
    """Index of the column-label line and the inDegrees flag of a .mot/.sto file."""
    in_degrees = False
    for i, line in enumerate(lines):
        low = line.strip().lower()
        if low.startswith('indegrees'):
            in_degrees = low.split('=', 1)[-1].strip() == 'yes'
        if low == END_HEADER:
            return i + 1, in_degrees
    raise TrajectoryError(f"Missing '{END_HEADER}' line in storage file header.")


def read_table(path: Path, time_candidates: Iterable[str] = ('time', 'time_s')) -> Table:
    """
    Read an OpenSim storage (.mot/.sto) or a delimited text file (CSV).

    Rows that do not parse as numbers are skipped.
    """
    path = Path(path)
    text = path.read_text(encoding='utf-8', errors='ignore')
    lines = [l.rstrip('\n') for l in text.splitlines()]

    in_degrees = False
    if path.suffix.lower() in STORAGE_SUFFIXES:
        header_idx, in_degrees = _parse_storage_header(lines)
        lines = [l for l in lines[header_idx:] if l.strip()]
        header_idx = 0
    else:
        lines = [l for l in lines if l.strip() and not l.strip().startswith('#')]
        header_idx = 0

    if not lines:
        raise TrajectoryError(f'No data in {path.name}')

    header_line = lines[header_idx]
    if path.suffix.lower() in STORAGE_SUFFIXES:
        delimiter = WHITESPACE
    else:
        delimiter = _detect_delimiter(header_line)
    headers = _split(header_line, delimiter)

    col_time = _find_col(headers, time_candidates)
    if col_time == -1:
        raise TrajectoryError(f'Missing time column in {path.name}: {headers}')

    rows: list[list[float]] = []
    for line in lines[header_idx + 1 :]:
        parts = _split(line, delimiter)
        if len(parts) < len(headers):
            continue
        try:
            rows.append([_parse_number(p) for p in parts[: len(headers)]])
        except ValueError:
            continue

    if not rows:
        raise TrajectoryError(f'No valid rows found in {path.name}')

    values = np.asarray(rows, dtype=float)
    labels = [h for i, h in enumerate(headers) if i != col_time]
    data = np.delete(values, col_time, axis=1)
    return Table(column_labels=labels, time_s=values[:, col_time], data=data, in_degrees=in_degrees)


def read_force_signal(path: Path, column: str = 'ground_force_vy') -> tuple[np.ndarray, np.ndarray]:
    """Return (time_s, force_n) for one column of a ground reaction force file."""
    table = read_table(path)
    return table.time_s, table.column(column)
