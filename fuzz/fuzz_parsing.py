import sys

import atheris

with atheris.instrument_imports():
    from volsched.audio import VolumeParseError, parse_volume_report
    from volsched.datetime_utils import parse_time_string
    from volsched.level import BoundedLevel, LevelError
    from volsched.schedule import Schedule, ScheduleError


def TestOneInput(data: bytes) -> None:
    """Fuzz schedule and pactl parsing with arbitrary input."""
    value = data.decode("utf-8", errors="ignore")

    try:
        parse_time_string(value)
    except ValueError:
        pass  # Expected for invalid input

    try:
        BoundedLevel.parse(value)
    except LevelError:
        pass

    try:
        parse_volume_report(value)
    except VolumeParseError:
        pass

    time_part, _, level_part = value.partition("=")
    try:
        Schedule.from_items([(time_part, level_part)], 60)
    except ScheduleError:
        pass


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
