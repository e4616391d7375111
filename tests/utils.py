from pathlib import Path

STATS_HEADER = [
    "Person ID",
    "Full Name",
    "First Name",
    "Last Name",
    "Events This Quarter",
    "Events Last Quarter",
    "Events This Year",
    "First Event",
    "Last Event",
    "Streak",
    "Status",
    "Activity Score",
]

DIRECTORY_HEADER = ["Person ID", "Full Name", "Last Name", "First Name", "Email"]


def stats_line(person_id: str, first: str, last: str, events: str, score: str) -> list[str]:
    return [person_id, f"{first} {last}", first, last, events, "", "", "", "", "", "", score]


def directory_line(person_id: str, last: str, first: str) -> list[str]:
    return [person_id, f"{first} {last}", last, first, ""]


def write_csv(path: Path, rows: list[list[str]]) -> Path:
    path.write_text("\n".join(",".join(row) for row in rows) + "\n", encoding="utf-8")
    return path


def read_csv_rows(path: Path) -> list[list[str]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.split(",") for line in lines if line]
