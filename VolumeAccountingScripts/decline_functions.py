import logging
import math
from dataclasses import dataclass
import numpy as np
import pandas as pd
from scipy.optimize import curve_fit
from .exceptions import InvalidInput
from .records import DeclineLaw, DeclineSeries, coerce_tag

'''
Closed-form Arps decline arithmetic for exponential, hyperbolic and harmonic laws. Time is in
decimal years from the start of the decline and Di is a nominal decline per year, so cumulative
volumes come out in rate-year units (multiply by days per year for barrels from bbl/day).
'''

log = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
DEFAULT_CURVE_STEP = 1.0 / 12  # one month

# Bounds used when fitting a decline to rate history: qi, Di (1/yr), b
_FIT_BOUNDS = {
    'qi': (1e-9, np.inf),
    'Di': (1e-6, 20.0),
    'b': (1e-3, 1.0 - 1e-3),
}
MIN_FIT_POINTS = 3


# Function to calculate the time difference between two dates in decimal years
def year_fraction(base_date, as_of, days_per_year=DAYS_PER_YEAR):
    '''
    Args:
    - base_date is the date from which the time difference is calculated
    - as_of is the date for which the time difference is calculated
    - days_per_year is the length of a year in days
    Returns:
    - A float, negative when as_of is before base_date
    '''
    base = np.datetime64(base_date, 'D')
    end = np.datetime64(as_of, 'D')
    return float((end - base) / np.timedelta64(1, 'D')) / days_per_year


# Function to map a law tag and b-factor onto the law that is actually evaluated
def resolve_decline_law(law, b=0.0):
    '''
    Args:
    - law is the decline law tag (exponential, hyperbolic or harmonic)
    - b is the b-factor, only consulted for the hyperbolic law
    Returns:
    - (law, b) where a hyperbolic b of exactly 0 evaluates as exponential and exactly 1 as harmonic.
      A hyperbolic b outside [0, 1] raises InvalidInput.
    '''
    law = coerce_tag(DeclineLaw, law)
    if law == DeclineLaw.exponential:
        return law, 0.0
    if law == DeclineLaw.harmonic:
        return law, 1.0
    if b is None or not np.isfinite(b) or b < 0 or b > 1:
        raise InvalidInput(f"Hyperbolic b-factor must be between 0 and 1, got {b}")
    if b == 0:
        return DeclineLaw.exponential, 0.0
    if b == 1:
        return DeclineLaw.harmonic, 1.0
    return law, float(b)


def _check_parameters(qi, Di, qlim=0.0):
    if qi is None or not np.isfinite(qi) or qi <= 0:
        raise InvalidInput(f"Initial rate qi must be positive, got {qi}")
    if Di is None or not np.isfinite(Di) or Di <= 0:
        raise InvalidInput(f"Nominal decline Di must be positive, got {Di}")
    if qlim is None or not np.isfinite(qlim) or qlim < 0:
        raise InvalidInput(f"Economic limit qlim must be non-negative, got {qlim}")


def _rate(t, qi, Di, b, law):
    if law == DeclineLaw.exponential:
        return qi * np.exp(-Di * t)
    if law == DeclineLaw.harmonic:
        return qi / (1 + Di * t)
    return qi / np.power(1 + b * Di * t, 1 / b)


def _cumulative(t, qi, Di, b, law):
    # expm1/log1p keep precision for small Di*t and for b close to 1
    if law == DeclineLaw.exponential:
        return (qi / Di) * -np.expm1(-Di * t)
    if law == DeclineLaw.harmonic:
        return (qi / Di) * np.log1p(Di * t)
    return (qi / ((1 - b) * Di)) * -np.expm1((1 - 1 / b) * np.log1p(b * Di * t))


def _as_output(values):
    values = np.asarray(values, dtype=float)
    return float(values) if values.ndim == 0 else values


# Function to calculate the production rate at time t
def decline_rate(t, qi, Di, b=0.0, law=DeclineLaw.exponential):
    '''
    Args:
    - t is the time in years since the start of the decline, scalar or array
    - qi is the initial production rate
    - Di is the initial nominal decline rate per year
    - b is the b-factor (hyperbolic only)
    - law is the decline law
    Returns:
    - q(t), a float for scalar t and a numpy array otherwise
    '''
    _check_parameters(qi, Di)
    law, b = resolve_decline_law(law, b)
    t = np.maximum(np.asarray(t, dtype=float), 0.0)
    return _as_output(_rate(t, qi, Di, b, law))


# Function to calculate cumulative production from 0 to t using the closed form integral
def decline_cumulative(t, qi, Di, b=0.0, law=DeclineLaw.exponential):
    _check_parameters(qi, Di)
    law, b = resolve_decline_law(law, b)
    t = np.maximum(np.asarray(t, dtype=float), 0.0)
    return _as_output(_cumulative(t, qi, Di, b, law))


# Function to calculate the time at which the rate first reaches the economic limit
def economic_limit_time(qi, Di, qlim, b=0.0, law=DeclineLaw.exponential):
    '''
    Returns:
    - t_lim in years. 0 when qlim >= qi, inf when qlim == 0 (the rate never reaches zero).
    '''
    _check_parameters(qi, Di, qlim)
    law, b = resolve_decline_law(law, b)
    if qlim == 0:
        return math.inf
    if qlim >= qi:
        return 0.0
    ratio = qi / qlim
    if law == DeclineLaw.exponential:
        return math.log(ratio) / Di
    if law == DeclineLaw.harmonic:
        return (ratio - 1) / Di
    return (ratio ** b - 1) / (b * Di)


class RateCurve:
    '''
    Lazy (t, q) samples of a forecast at a fixed step. Iterating starts over from t = 0 every time,
    and the samples always end with the end point itself, min(t_lim, horizon). Without a horizon the
    curve ends at the time EUR is evaluated, so it is finite even when qlim is 0.
    '''

    def __init__(self, forecast, step=DEFAULT_CURVE_STEP, horizon=None):
        if step is None or not np.isfinite(step) or step <= 0:
            raise InvalidInput(f"Curve step must be positive, got {step}")
        if horizon is not None and (not np.isfinite(horizon) or horizon < 0):
            raise InvalidInput(f"Curve horizon must be a non-negative number of years, got {horizon}")
        self.forecast = forecast
        self.step = float(step)
        end = forecast.t_lim if horizon is None else min(forecast.t_lim, horizon)
        self.end = float(end if np.isfinite(end) else forecast.t_eur)

    def times(self):
        n = int(math.floor(self.end / self.step))
        for i in range(n + 1):
            t = i * self.step
            if t >= self.end - self.step * 1e-9:
                break
            yield t
        yield self.end

    def __iter__(self):
        for t in self.times():
            yield t, self.forecast.rate_at(t)

    def __len__(self):
        return sum(1 for _ in self.times())

    def to_frame(self):
        t = np.fromiter(self.times(), dtype=float)
        return pd.DataFrame({
            'well_id': self.forecast.well_id,
            't': t,
            'q': np.atleast_1d(self.forecast.rate_at(t)),
            'Np': np.atleast_1d(self.forecast.cumulative_at(t)),
        })


@dataclass(frozen=True)
class DeclineForecast:
    series: DeclineSeries
    law: DeclineLaw
    b: float
    t_lim: float
    t_eur: float
    eur: float
    as_of_years: float
    cumulative_to_date: float
    remaining_reserves: float
    past_economic_limit: bool

    @property
    def well_id(self):
        return self.series.well_id

    def rate_at(self, t):
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _as_output(_rate(t, self.series.qi, self.series.Di, self.b, self.law))

    def cumulative_at(self, t):
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _as_output(_cumulative(t, self.series.qi, self.series.Di, self.b, self.law))

    def curve(self, step=DEFAULT_CURVE_STEP, horizon=None):
        return RateCurve(self, step, horizon)


def _validate_series(series, days_per_year):
    _check_parameters(series.qi, series.Di, series.qlim)
    law, b = resolve_decline_law(series.law, series.b)
    window = year_fraction(series.start_date, series.end_date, days_per_year)
    if window <= 0:
        raise InvalidInput(
            f"Analysis window must end after it starts, got {series.start_date} to {series.end_date}"
        )
    return law, b, window


# Function to forecast a decline series as of a given date
def forecast(series, as_of, days_per_year=DAYS_PER_YEAR):
    '''
    Args:
    - series is a DeclineSeries
    - as_of is the date cumulative production to date is evaluated at, dates before the start of the
      series evaluate at t = 0
    - days_per_year is the year length used to turn dates into decimal years
    Returns:
    - A DeclineForecast. EUR is the cumulative to the economic limit, or to the end of the analysis
      window when qlim is 0. Remaining reserves are floored at 0, a well whose as-of date is at or
      beyond the time EUR is taken at (the economic limit, or the window end when qlim is 0) is
      flagged with past_economic_limit.
    '''
    law, b, window = _validate_series(series, days_per_year)
    qi, Di = series.qi, series.Di

    t_lim = economic_limit_time(qi, Di, series.qlim, b, law)
    t_eur = t_lim if math.isfinite(t_lim) else window
    eur = float(_cumulative(t_eur, qi, Di, b, law))

    as_of_years = max(year_fraction(series.start_date, as_of, days_per_year), 0.0)
    cumulative_to_date = float(_cumulative(as_of_years, qi, Di, b, law))
    past_limit = as_of_years >= t_eur
    if past_limit:
        log.debug("Well %s is past its economic limit (t=%.3f yr, t_eur=%.3f yr)", series.well_id, as_of_years, t_eur)

    return DeclineForecast(
        series=series,
        law=law,
        b=b,
        t_lim=t_lim,
        t_eur=t_eur,
        eur=eur,
        as_of_years=as_of_years,
        cumulative_to_date=cumulative_to_date,
        remaining_reserves=max(eur - cumulative_to_date, 0.0),
        past_economic_limit=past_limit,
    )


# Function to tabulate a forecast curve with cumulative volumes
def cumulative_table(forecast_result, step=DEFAULT_CURVE_STEP, horizon=None):
    return forecast_result.curve(step, horizon).to_frame()


# Function to fit a decline series to a well's rate history
def fit_decline_series(well_id, rates, law, start_date, end_date, qlim=0.0, b=None, days_per_year=DAYS_PER_YEAR):
    '''
    Fits qi and Di (and b for a hyperbolic law when b is not given) to the oil rates of a well
    using bounded least squares.
    Args:
    - well_id is the identifier of the well
    - rates is an iterable of WellRate records, undated and non-positive rates are skipped
    - law is the decline law to fit
    - start_date is t = 0 of the decline, earlier records are skipped
    - end_date closes the analysis window of the returned series
    - qlim is the economic limit carried into the returned series
    - b is a fixed b-factor, for the hyperbolic law it is fitted when None
    Returns:
    - A DeclineSeries with the fitted parameters
    '''
    points = sorted(
        (year_fraction(start_date, r.timestamp, days_per_year), float(r.oil_rate))
        for r in rates
        if r.timestamp is not None and r.oil_rate is not None and r.oil_rate > 0
    )
    points = [(t, q) for t, q in points if t >= 0]
    if len(points) < MIN_FIT_POINTS:
        raise InvalidInput(
            f"Well '{well_id}' has {len(points)} usable rate points; at least {MIN_FIT_POINTS} are needed to fit a decline"
        )
    t_act = np.array([p[0] for p in points])
    q_act = np.array([p[1] for p in points])

    fit_b = coerce_tag(DeclineLaw, law) == DeclineLaw.hyperbolic and b is None
    if fit_b:
        fit_law, fixed_b = DeclineLaw.hyperbolic, None
    else:
        fit_law, fixed_b = resolve_decline_law(law, 0.0 if b is None else b)

    # Warm start from a log-linear (exponential) regression
    if np.ptp(t_act) > 0:
        slope, intercept = np.polyfit(t_act, np.log(q_act), 1)
        Di_guess = -slope
        qi_guess = math.exp(intercept)
    else:
        Di_guess, qi_guess = 0.3, float(q_act[0])
    Di_guess = float(np.clip(Di_guess, 0.05, _FIT_BOUNDS['Di'][1]))

    if fit_b:
        def model_func(t, qi, Di, b_fit):
            return _rate(t, qi, Di, b_fit, DeclineLaw.hyperbolic)
        names = ['qi', 'Di', 'b']
        initial_guess = [qi_guess, Di_guess, 0.5]
    else:
        def model_func(t, qi, Di):
            return _rate(t, qi, Di, fixed_b, fit_law)
        names = ['qi', 'Di']
        initial_guess = [qi_guess, Di_guess]

    lows = np.array([_FIT_BOUNDS[n][0] for n in names])
    highs = np.array([_FIT_BOUNDS[n][1] for n in names])
    initial_guess = np.clip(initial_guess, lows, highs)

    try:
        popt, _ = curve_fit(
            model_func, t_act, q_act,
            p0=initial_guess, bounds=(lows, highs), maxfev=10_000, method='trf'
        )
    except (RuntimeError, ValueError) as e:
        raise InvalidInput(f"Decline fit for well '{well_id}' did not converge: {e}") from e

    params = dict(zip(names, (float(p) for p in popt)))
    fitted_b = params.get('b', fixed_b)
    log.debug("Fitted %s decline for well %s: %s", fit_law.value, well_id, params)

    return DeclineSeries(
        well_id=well_id,
        law=fit_law,
        qi=params['qi'],
        Di=params['Di'],
        start_date=start_date,
        end_date=end_date,
        b=fitted_b,
        qlim=qlim,
    )
