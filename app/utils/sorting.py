import re


def natural_key(value: str | None) -> list:
    """Sort key so "2º Ano 10" comes after "2º Ano 9"."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", value or "")]
