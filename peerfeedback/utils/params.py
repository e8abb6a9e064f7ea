from peerfeedback.errors import InvalidHttpParameterError


def get_non_null_param(name: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise InvalidHttpParameterError(f"The [{name}] HTTP parameter is null.")
    return value.strip()
