"""
Performance bucketing for a portfolio over a date range.

The range is split into yearly, three-month, monthly, or daily buckets
depending on its length in whole months. Each bucket is priced on a single
representative market date, normally the last weekday of its calendar period.
Weekends are never used, even when the price history quotes one.

Representative dates after "yesterday" are clipped back to the last weekday on
or before yesterday. When the representative date is not a market date, the
nearest earlier market date inside the bucket's period is used; only when the
period holds no market date at all is the next market date after it used.
"""

from datetime import date, timedelta
from typing import Optional

import pandas as pd

from stockfolio.models import Granularity, PerformancePoint, PerformanceSeries
from stockfolio.portfolio.ledger import Portfolio


MIN_BUCKETS = 5

# Granularity thresholds, in whole months between start and end
YEARLY_ABOVE_MONTHS = 90
QUARTERLY_ABOVE_MONTHS = 30
MONTHLY_ABOVE_MONTHS = 1

# Backward search window for a bucket whose period lies after yesterday
FUTURE_PERIOD_LOOKBACK_DAYS = 7


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end."""
    months = (end.year - start.year) * 12 + end.month - start.month
    if end.day < start.day:
        months -= 1
    return months


def weekdays_between(start: date, end: date) -> int:
    """Number of weekdays strictly between start and end."""
    return len(pd.bdate_range(start + timedelta(days=1), end - timedelta(days=1)))


def choose_granularity(months: int) -> Granularity:
    if months > YEARLY_ABOVE_MONTHS:
        return Granularity.YEARLY
    if months > QUARTERLY_ABOVE_MONTHS:
        return Granularity.QUARTERLY
    if months > MONTHLY_ABOVE_MONTHS:
        return Granularity.MONTHLY
    return Granularity.DAILY


def bucket_count(granularity: Granularity, start: date, end: date) -> int:
    """
    Number of buckets for a range, never fewer than MIN_BUCKETS.

    Args:
        granularity: Bucket size
        start: Range start
        end: Range end

    Returns:
        Bucket count
    """
    months = months_between(start, end)
    if granularity == Granularity.YEARLY:
        count = months // 12 + 1
    elif granularity == Granularity.QUARTERLY:
        count = months // 3 + 1
    elif granularity == Granularity.MONTHLY:
        count = months + 1
    else:
        count = weekdays_between(start, end) + 1
    return max(count, MIN_BUCKETS)


def last_weekday_on_or_before(day: date) -> date:
    """Saturday maps to Friday, Sunday to Friday, weekdays to themselves."""
    weekday = day.weekday()
    if weekday == 5:
        return day - timedelta(days=1)
    if weekday == 6:
        return day - timedelta(days=2)
    return day


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamping the day to the target month's end."""
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def last_weekday_of_month(day: date) -> date:
    month_end = (pd.Timestamp(day) + pd.offsets.MonthEnd(0)).date()
    return last_weekday_on_or_before(month_end)


def last_weekday_of_year(day: date) -> date:
    year_end = (pd.Timestamp(day) + pd.offsets.YearEnd(0)).date()
    return last_weekday_on_or_before(year_end)


def next_weekday_after(day: date) -> date:
    following = day + timedelta(days=1)
    while following.weekday() >= 5:
        following += timedelta(days=1)
    return following


def performance_series(
    portfolio: Portfolio,
    start: date,
    end: date,
) -> PerformanceSeries:
    """
    Portfolio value over a date range, bucketed by range length.

    Args:
        portfolio: Portfolio to evaluate
        start: Range start (validated by the caller)
        end: Range end, not before start (validated by the caller)

    Returns:
        PerformanceSeries with at least MIN_BUCKETS points

    Raises:
        PriceNotFound: If any bucket cannot be priced; no partial series
            is returned
    """
    granularity = choose_granularity(months_between(start, end))
    count = bucket_count(granularity, start, end)

    if granularity == Granularity.YEARLY:
        points = _yearly_points(portfolio, start, count)
    elif granularity == Granularity.QUARTERLY:
        points = _quarterly_points(portfolio, start, end, count)
    elif granularity == Granularity.MONTHLY:
        points = _monthly_points(portfolio, start, count)
    else:
        points = _daily_points(portfolio, start, count)

    return PerformanceSeries(
        portfolio_name=portfolio.name,
        start_date=start,
        end_date=end,
        granularity=granularity,
        points=points,
    )


def _yearly_points(portfolio: Portfolio, start: date, count: int) -> list[PerformancePoint]:
    points = []
    for i in range(count):
        frame = add_months(start, 12 * i)
        representative = last_weekday_of_year(frame)
        market_date = _resolve(portfolio, representative, frame.replace(month=1, day=1))
        points.append(
            PerformancePoint(
                label=str(frame.year),
                value=portfolio.value_at(market_date),
                market_date=market_date,
            )
        )
    return points


def _monthly_points(portfolio: Portfolio, start: date, count: int) -> list[PerformancePoint]:
    points = []
    for i in range(count):
        frame = add_months(start, i)
        representative = last_weekday_of_month(frame)
        market_date = _resolve(portfolio, representative, frame.replace(day=1))
        points.append(
            PerformancePoint(
                label=frame.strftime("%b %Y"),
                value=portfolio.value_at(market_date),
                market_date=market_date,
            )
        )
    return points


def _quarterly_points(
    portfolio: Portfolio,
    start: date,
    end: date,
    count: int,
) -> list[PerformancePoint]:
    end_month = (end.year, end.month)
    points = []
    frame_start = start
    for _ in range(count):
        frame_end = add_months(frame_start, 2)
        if frame_end > end and (frame_end.year, frame_end.month) != end_month:
            frame_end = add_months(frame_start, 1)
        one_month_on = add_months(frame_start, 1)
        if one_month_on > end and (one_month_on.year, one_month_on.month) != end_month:
            frame_end = frame_start

        # A span ending in the end month never looks past the end date
        if (frame_end.year, frame_end.month) == end_month:
            representative = last_weekday_on_or_before(end)
        else:
            representative = last_weekday_of_month(frame_end)

        market_date = _resolve(portfolio, representative, frame_start.replace(day=1))
        points.append(
            PerformancePoint(
                label=f"{frame_start:%b %Y} – {frame_end:%b %Y}",
                value=portfolio.value_at(market_date),
                market_date=market_date,
            )
        )
        frame_start = add_months(frame_end, 1)
    return points


def _daily_points(portfolio: Portfolio, start: date, count: int) -> list[PerformancePoint]:
    points = []
    current = start
    for _ in range(count):
        market_date = _resolve(portfolio, current, current)
        points.append(
            PerformancePoint(
                label=market_date.strftime("%a, %d %b %Y"),
                value=portfolio.value_at(market_date),
                market_date=market_date,
            )
        )
        current = next_weekday_after(market_date)
    return points


def _resolve(portfolio: Portfolio, representative: date, period_start: date) -> date:
    """
    Market date used to price a bucket.

    Args:
        portfolio: Portfolio whose resolver decides market dates
        representative: Natural representative date of the bucket
        period_start: First calendar date of the bucket's period
    """
    resolver = portfolio.resolver
    yesterday = resolver.yesterday()
    if representative > yesterday:
        representative = last_weekday_on_or_before(yesterday)

    if period_start <= representative:
        floor = period_start
    else:
        floor = representative - timedelta(days=FUTURE_PERIOD_LOOKBACK_DAYS)

    found = _latest_weekday_market_date(portfolio, representative, floor)
    if found is None:
        found = _first_weekday_market_date(portfolio, representative)
    return found


def _latest_weekday_market_date(portfolio: Portfolio, on: date, floor: date) -> Optional[date]:
    resolver = portfolio.resolver
    found = resolver.previous_valid_market_date(on, floor)
    while found is not None and found.weekday() >= 5:
        found = resolver.previous_valid_market_date(found - timedelta(days=1), floor)
    return found


def _first_weekday_market_date(portfolio: Portfolio, on: date) -> date:
    # Past yesterday the resolver gives up and returns an unquoted date
    resolver = portfolio.resolver
    found = resolver.next_valid_market_date(on)
    while found.weekday() >= 5 and found <= resolver.yesterday():
        found = resolver.next_valid_market_date(found + timedelta(days=1))
    return found
