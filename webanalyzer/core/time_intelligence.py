"""Period comparison: previous period shifting and growth rates."""

from datetime import datetime, timedelta, timezone

from webanalyzer.core.filter import Filter, today


def calculate_growth(current: float, previous: float) -> float:
    """Relative change from previous to current.

    Returns 0 if both values are zero and 1 (100%) if only the previous
    value is zero.

    Examples:
        >>> calculate_growth(150, 100)
        0.5
        >>> calculate_growth(5, 0)
        1.0
    """
    current = float(current)
    previous = float(previous)

    if current == 0 and previous == 0:
        return 0.0

    if previous == 0:
        return 1.0

    return (current - previous) / previous


def previous_period(filter: Filter) -> None:
    """Shift a validated filter in place to the period preceding it.

    A single day is compared to the same weekday one week earlier. If that
    day is today, the comparison stops at the current time of day a week ago.
    A range of several days is moved back by its own length, so the previous
    period ends the day before the current one starts.
    """
    from_ = filter.from_
    to = filter.to

    if filter.imported_from is not None and filter.imported_from < from_:
        from_ = filter.imported_from

    if from_ == to:
        if to == today():
            from_ -= timedelta(days=7)
            to = datetime.now(timezone.utc) - timedelta(days=7)
            filter.include_time = True
        else:
            from_ -= timedelta(days=7)
            to -= timedelta(days=7)
    else:
        days = to - from_

        if days >= timedelta(days=1):
            to = from_ - timedelta(days=1)
            from_ = to - days
        else:
            from_ -= timedelta(days=1)
            to -= timedelta(days=1)

    filter.from_ = from_
    filter.to = to

    if filter.imported_until is not None:
        filter.validate()
