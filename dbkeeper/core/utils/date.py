from datetime import datetime, timedelta, timezone


def utc_now():
    """
    Get the current UTC datetime.

    ### Returns:

    - **datetime**: Current datetime with UTC timezone

    """
    return datetime.now(timezone.utc)


def to_utc_timestring(date):
    """
    Format a datetime as UTC timestring for report headers.

    Format: 'YYYY-MM-DD HH:MM:SS UTC'

    ### Args:

    - **date** (datetime): The datetime to format, naive values are taken as UTC

    ### Returns:

    - **str**: Formatted UTC timestring

    """
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date.astimezone(tz=timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')


def days_ago_naive_utc(days, now=None):
    """
    Get the naive UTC datetime lying a number of days in the past.

    Content tables store their `*_gmt` columns as naive UTC values, so
    comparisons against them need a naive bound.

    ### Args:

    - **days** (int): Number of days to go back
    - **now** (datetime, optional): Reference time, defaults to utc_now()

    ### Returns:

    - **datetime**: Naive datetime in UTC

    """
    now = utc_now() if now is None else now
    if now.tzinfo is not None:
        now = now.astimezone(tz=timezone.utc).replace(tzinfo=None)
    return now - timedelta(days=days)
