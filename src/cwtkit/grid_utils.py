"""
Created on Mon Oct 19 2026

Analysis grid and diagnostics: frequency grid, time-frequency decomposition,
cone of influence, significance levels and scalogram rendering.
"""
# Standard library imports
from typing import Any, Dict, Optional, Tuple, Union, TYPE_CHECKING

# Third-party imports
import numpy as np
from numpy.typing import ArrayLike

# Local imports
from cwtkit import basis
from cwtkit import data_utils
from cwtkit import wt_utils

# Variable type hints
if TYPE_CHECKING:
    import pandas as pd
    from pandas.arrays import DatetimeArray
    import matplotlib

RENDER_MODES = ('magnitude', 'magnitude_squared', 'magnitude_sqrt')


def build_frequency_grid(f_start: Union[int, float],
                         f_end: Union[int, float],
                         K: Union[int, float, Dict[str, Any]]) -> np.ndarray:
    """
    Build the geometric grid of analysis frequencies.

    Parameters
    ----------
    f_start : int or float
        Lowest frequency (> 0).
    f_end : int or float
        Highest frequency (> f_start).
    K : int, float or dict
        Scale parameter of the Morlet wavelet (> 0), or its wavelet dictionary.

    Returns
    -------
    numpy.ndarray
        ceil(1 + log(f_end/f_start) / log(1 + 1/(8K))) frequencies, geometrically
        spaced from f_start to f_end (both included).

    Notes
    -----
    The relative step 1/(8K) follows the frequency resolution of the wavelet:
    neighbouring rows at large K overlap strongly in frequency, so a finer
    grid adds computation without adding information.
    """
    K = basis.as_wavelet(K)['K']
    if not f_start > 0:
        raise ValueError(f'f_start must be positive, got {f_start}')
    if not f_end > f_start:
        raise ValueError(f'f_end ({f_end}) must be greater than f_start ({f_start})')

    num_freqs = 1 + np.log(f_end / f_start) / np.log(1 + 1 / (8 * K))
    return np.geomspace(f_start, f_end, int(np.ceil(num_freqs)))


def wavelet_grid(x: ArrayLike,
                 K: Union[int, float, Dict[str, Any]],
                 f_start: Union[int, float],
                 f_end: Union[int, float],
                 fs: Union[int, float],
                 pad: str = 'zpd',
                 padmode: str = 'b',
                 use_pyfftw: bool = False,
                 workers: Optional[int] = None,
                 chunk_size: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the time-frequency decomposition of a signal.

    Parameters
    ----------
    x : array_like
        Real-valued signal of length N.
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    f_start, f_end : int or float
        Frequency range (Hz, or cycles per unit time).
    fs : int or float
        Sampling frequency.
    pad, padmode : str, optional
        Padding method and side(s), see data_utils.sig_length_and_padding.
    use_pyfftw : bool, optional (default=False)
        Whether to use pyfftw for the FFTs.
    workers, chunk_size : int, optional
        Thread fan-out over frequency rows, see wt_utils.compute_wavelet_coef.

    Returns
    -------
    grid : numpy.ndarray
        Complex coefficients with shape (num_frequencies, N). Row r equals
        wt_utils.wavelet_transform_fourier(x, 2*pi*frequencies[r], K, fs).
    frequencies : numpy.ndarray
        Frequencies of the rows.

    Notes
    -----
    A frequency range reaching the Nyquist frequency is reported once, here,
    instead of once per row.
    """
    import warnings

    fs = data_utils.check_sampling(fs)
    wavelet = basis.as_wavelet(K)
    frequencies = build_frequency_grid(f_start, f_end, wavelet)
    if f_end >= fs / 2:
        warnings.warn(f'f_end ({f_end}) is at or above the Nyquist frequency ({fs / 2}). '
                      'Rows above fs/2 are aliased', UserWarning, stacklevel=2)

    with warnings.catch_warnings():
        # Per-row Nyquist warnings, already reported for the whole range
        warnings.filterwarnings('ignore', message='Analysis frequency .* Nyquist', category=UserWarning)
        grid = wt_utils.wavelet_transform_rows(x, 2 * np.pi * frequencies, wavelet, fs, pad, padmode,
                                               use_pyfftw, workers, chunk_size)
    return grid, frequencies


def edge_distances(n: int) -> np.ndarray:
    """
    Distance (in samples) of each sample to the nearest edge, the edge
    sitting one sample outside the signal.
    """
    if n % 2:  # Odd sample size
        half_n = int(np.ceil(n / 2))
        indices = np.arange(1, half_n + 1)
        return np.concatenate((indices, indices[-2::-1]))  # symmetric w.r.t centre
    half_n = n // 2
    indices = np.arange(1, half_n + 1)
    return np.concatenate((indices, indices[::-1]))


def compute_coi(t_start: Union[int, float],
                t_end: Union[int, float],
                fs: Union[int, float],
                K: Union[int, float, Dict[str, Any]],
                percentout: float = 0.02,
                unit: str = 'f',
                fper: Optional[ArrayLike] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the Cone of Influence (COI) of the wavelet transform.

    Parameters
    ----------
    t_start : int or float
        Time of the first sample.
    t_end : int or float
        Time of the last sample.
    fs : int or float
        Sampling frequency.
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    percentout : float, optional (default=0.02, 2%)
        Envelope value at the signal edge above which a coefficient is
        considered corrupted by edge effects.
    unit : str, optional (default='f')
        'f': COI as the lowest trusted frequency for each time.
        'p': COI as the largest trusted period for each time.
    fper : array_like, optional (default=None)
        Analysed frequencies (unit 'f') or periods (unit 'p'). COI values are
        clamped to their range.

    Returns
    -------
    times : numpy.ndarray
        Sample times.
    coi : numpy.ndarray
        COI boundary for each time.

    Notes
    -----
    The boundary depends only on the wavelet and the signal length, not on
    the signal values. It assumes the signal is zero outside its support
    (zero padding): coefficients at frequencies below the boundary (periods
    above it) overlap the missing samples and should be treated as
    unreliable.
    """
    fs = data_utils.check_sampling(fs)
    if not t_end >= t_start:
        raise ValueError(f't_end ({t_end}) must not be lower than t_start ({t_start})')
    if unit[0].lower() not in ['p', 'f']:
        raise ValueError("unit must be 'p' for periods or 'f' for frequencies")

    n = int(round((t_end - t_start) * fs)) + 1
    times = t_start + np.arange(n) / fs

    # Lowest trusted frequency
    coi = basis.as_wavelet(K)['coi_factor'](percentout) * fs / edge_distances(n)

    if unit[0].lower() == 'p':
        coi = 1.0 / coi
        if fper is not None:
            coi = np.clip(coi, np.min(fper), np.max(fper))
    elif fper is not None:
        coi = np.clip(coi, np.min(fper), np.max(fper))

    return times, coi


def compute_coi_impulse(n: int,
                        fs: Union[int, float],
                        K: Union[int, float, Dict[str, Any]],
                        frequencies: ArrayLike,
                        percentout: float = 0.02,
                        unit: str = 'f') -> np.ndarray:
    """
    Compute the Cone of Influence numerically, with impulses at the signal edges.

    Parameters
    ----------
    n : int
        Signal length.
    fs : int or float
        Sampling frequency.
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    frequencies : array_like
        Analysed frequencies (increasing).
    percentout : float, optional (default=0.02)
        Threshold on the normalized edge response.
    unit : str, optional (default='f')
        'f' (lowest trusted frequency) or 'p' (largest trusted period).

    Returns
    -------
    coi : numpy.ndarray
        COI boundary for each of the n samples, restricted to the grid values.

    Notes
    -----
    The algorithm works by:
    1. Placing unit impulses one sample outside each end of the signal
    2. Computing their wavelet transform on the analysed frequencies
    3. Normalizing each row by its maximum
    4. Picking, for each time, the lowest frequency whose edge response is
       below percentout (the highest frequency when none is)
    """
    if not isinstance(percentout, float) or not (0 < percentout < 1):
        raise ValueError(f'Percentage {percentout} inadmissible. Must be a float in the range (0, 1)')
    if unit[0].lower() not in ['p', 'f']:
        raise ValueError("unit must be 'p' for periods or 'f' for frequencies")
    frequencies = np.asarray(frequencies, dtype=float)

    dirac = np.zeros(n + 2)
    dirac[[0, -1]] = 1
    wave = wt_utils.wavelet_transform_rows(dirac, 2 * np.pi * frequencies, K, fs)[:, 1:-1]

    response = np.abs(wave)
    response /= np.max(response, axis=1, keepdims=True)
    trusted = response < percentout

    order = np.argsort(frequencies)
    trusted = trusted[order]
    sorted_freqs = frequencies[order]
    # First trusted row from the lowest frequency, highest frequency otherwise
    first = np.where(trusted.any(axis=0), np.argmax(trusted, axis=0), len(sorted_freqs) - 1)
    coi = sorted_freqs[first]

    if unit[0].lower() == 'p':
        coi = 1.0 / coi
    return coi


def downsample_factor(K: Union[int, float, Dict[str, Any]],
                      fs: Union[int, float],
                      f_end: Union[int, float]) -> float:
    """
    Time decimation factor for display, max(K/24 * fs/f_end, 1).

    The finest time structure resolved by the grid is set by its highest
    frequency; showing more time samples than that implies a resolution the
    wavelet does not have.
    """
    K = basis.as_wavelet(K)['K']
    fs = data_utils.check_sampling(fs)
    if not f_end > 0:
        raise ValueError(f'f_end must be positive, got {f_end}')
    return max(K / 24 * fs / f_end, 1)


def render(grid: np.ndarray,
           frequencies: ArrayLike,
           coi: Optional[Union[ArrayLike, Tuple[ArrayLike, ArrayLike]]] = None,
           mode: str = 'magnitude',
           times: Optional[ArrayLike] = None,
           K: Optional[Union[int, float, Dict[str, Any]]] = None,
           fs: Optional[Union[int, float]] = None,
           downsample: bool = True) -> Tuple[np.ma.MaskedArray, np.ndarray, Optional[np.ndarray]]:
    """
    Turn wavelet coefficients into a displayable time-frequency surface.

    Parameters
    ----------
    grid : numpy.ndarray
        Complex coefficients with shape (num_frequencies, N).
    frequencies : array_like
        Frequencies of the rows.
    coi : array_like or tuple, optional (default=None)
        Lowest trusted frequency for each time (length N), or the (times, coi)
        tuple returned by compute_coi.
    mode : str, optional (default='magnitude')
        'magnitude' (|W|), 'magnitude_squared' (|W|**2) or 'magnitude_sqrt' (sqrt(|W|)).
    times : array_like, optional (default=None)
        Sample times. Defaults to arange(N) / fs (or arange(N) without fs).
    K : int, float or dict, optional (default=None)
        Scale parameter or wavelet dictionary, needed for down-sampling.
    fs : int or float, optional (default=None)
        Sampling frequency, needed for down-sampling.
    downsample : bool, optional (default=True)
        Whether to resample the time axis by downsample_factor(K, fs, max(frequencies)).
        Ignored if K or fs is missing.

    Returns
    -------
    surface : numpy.ma.MaskedArray
        Real values with shape (num_frequencies, N_display), masked inside the
        cone of influence (frequencies below the COI).
    times : numpy.ndarray
        Times of the displayed columns.
    coi : numpy.ndarray or None
        COI on the displayed times.
    """
    grid = np.asarray(grid)
    frequencies = np.asarray(frequencies, dtype=float)
    if grid.ndim != 2:
        raise ValueError(f'grid must be a 2D array, got shape {grid.shape}')
    if len(frequencies) != grid.shape[0]:
        raise ValueError(f'Length of frequencies ({len(frequencies)}) must match first dimension of grid ({grid.shape[0]})')

    if mode == 'magnitude':
        surface = np.abs(grid)
    elif mode == 'magnitude_squared':
        surface = np.abs(grid)**2
    elif mode == 'magnitude_sqrt':
        surface = np.sqrt(np.abs(grid))
    else:
        raise ValueError(f'Render mode "{mode}" invalid. Available modes: {", ".join(RENDER_MODES)}')

    n = grid.shape[1]
    if times is None:
        times = np.arange(n) / (1 if fs is None else data_utils.check_sampling(fs))
    times = np.asarray(times, dtype=float)
    if len(times) != n:
        raise ValueError(f'Time vector length ({len(times)}) does not match grid dimension ({n})')

    if isinstance(coi, tuple):
        coi = coi[1]
    if coi is not None:
        coi = np.asarray(coi, dtype=float)
        if len(coi) != n:
            raise ValueError(f'Length of coi ({len(coi)}) must match second dimension of grid ({n})')

    # Down-sample time axis
    if downsample and K is not None and fs is not None and n > 1:
        new_length = int(np.floor(n / downsample_factor(K, fs, np.max(frequencies))))
        if 1 < new_length < n:
            from scipy.interpolate import interp1d

            new_times = np.linspace(times[0], times[-1], new_length)
            surface = interp1d(times, surface, axis=1)(new_times)
            if coi is not None:
                coi = np.interp(new_times, times, coi)
            times = new_times

    if coi is None:
        mask = np.zeros(surface.shape, dtype=bool)
    else:
        mask = frequencies[:, np.newaxis] < coi[np.newaxis, :]

    return np.ma.masked_array(surface, mask=mask), times, coi


def compute_significance(y: ArrayLike,
                         grid: np.ndarray,
                         frequencies: ArrayLike,
                         K: Union[int, float, Dict[str, Any]],
                         fs: Union[int, float],
                         lag1: Optional[float] = None,
                         prob: float = 0.95,
                         pad: str = 'zpd',
                         padmode: str = 'b') -> Optional[np.ndarray]:
    """
    Compute the significance of wavelet power against a red-noise background.

    Parameters
    ----------
    y : array_like
        Analysed signal.
    grid : numpy.ndarray
        Wavelet coefficients with shape (num_frequencies, N).
    frequencies : array_like
        Frequencies of the rows.
    K : int, float or dict
        Scale parameter or wavelet dictionary used for the grid.
    fs : int or float
        Sampling frequency.
    lag1 : float, optional (default=None)
        Lag-1 autocorrelation of the AR(1) background. Estimated from y if None.
    prob : float, optional (default=0.95)
        Confidence level (0-1).
    pad, padmode : str, optional
        Padding used for the grid (fixes the kernel length).

    Returns
    -------
    signif : numpy.ndarray or None
        Boolean array, True where |W|**2 exceeds the background threshold.
        None if lag1 cannot be estimated.

    Notes
    -----
    Follows Torrence and Compo (1998), "A Practical Guide to Wavelet Analysis",
    Bull. Amer. Meteor. Soc., 79, 61-78. For a narrow-band kernel h, the
    expected power of the background at frequency f is var * P(f) * sum|h|**2,
    with P the normalized AR(1) spectrum. sum|h|**2 comes from the kernel
    spectrum by Parseval. |W|**2 of the complex Morlet follows chi2 with two
    degrees of freedom.
    """
    from scipy.stats import chi2

    y = data_utils.check_signal(y)
    fs = data_utils.check_sampling(fs)
    frequencies = np.asarray(frequencies, dtype=float)
    grid = np.asarray(grid)
    if grid.shape != (len(frequencies), len(y)):
        raise ValueError(f'grid shape {grid.shape} must be (len(frequencies), len(y)) = '
                         f'{(len(frequencies), len(y))}')

    if lag1 is None:
        lag1 = ar1_coefficient(y)
        if not np.isfinite(lag1):
            import warnings
            warnings.warn('AR1 autocorrelation estimation failed for significance computation.'
                          '\nPlease provide lag1 manually when calling the function.', UserWarning, stacklevel=2)
            return None

    # Normalized AR1 spectrum
    norm_freq = frequencies / fs
    P = (1 - lag1**2) / (1 + lag1**2 - 2 * lag1 * np.cos(2 * np.pi * norm_freq))

    # Kernel energy per row (Parseval)
    wavelet = basis.as_wavelet(K)
    omegas = 2 * np.pi * frequencies
    support = wt_utils.kernel_support(wavelet, omegas, fs)
    _, _, n_ext = data_utils.sig_length_and_padding(len(y), pad, padmode, support)
    psi = wt_utils.compute_psi(n_ext, fs, wavelet, omegas)
    energy = np.sum(psi**2, axis=1) / n_ext

    dof = 2
    threshold = np.var(y) * P * energy * chi2.ppf(prob, dof) / dof
    return np.abs(grid)**2 >= threshold[:, np.newaxis]


def resample_significance(signif: np.ndarray,
                          times: ArrayLike,
                          new_times: ArrayLike) -> np.ndarray:
    """
    Bring a boolean significance array onto the times of a rendered surface,
    taking the nearest original column for each new time.
    """
    from scipy.interpolate import interp1d

    signif = np.asarray(signif, dtype=bool)
    times = np.asarray(times, dtype=float)
    new_times = np.asarray(new_times, dtype=float)
    if signif.ndim != 2 or signif.shape[1] != len(times):
        raise ValueError(f'signif shape {signif.shape} does not match the number of times ({len(times)})')
    if len(new_times) == len(times) and np.array_equal(new_times, times):
        return signif
    if len(times) == 1:
        return np.repeat(signif, len(new_times), axis=1)

    nearest = interp1d(times, signif.astype(float), axis=1, kind='nearest',
                       bounds_error=False, fill_value=(signif[:, 0].astype(float), signif[:, -1].astype(float)))
    return nearest(new_times) > 0.5


def ar1_coefficient(x: ArrayLike) -> float:
    """
    Estimate the lag-1 autocorrelation coefficient, r(1) = c(1)/c(0).
    """
    x = np.asarray(x, dtype=float).flatten()
    N = len(x)
    if N < 2:
        return np.nan
    x = x - np.mean(x)

    c0 = np.dot(x, x) / N  # Lag-0 autocovariance (variance)
    if c0 == 0:
        return np.nan
    c1 = np.dot(x[:-1], x[1:]) / (N - 1)  # Lag-1 autocovariance
    return c1 / c0


def plot_scalogram(surface: np.ndarray,
                   frequencies: ArrayLike,
                   times: Optional[Union[np.ndarray, "pd.Series", "pd.DatetimeIndex", "DatetimeArray"]] = None,
                   coi: Optional[np.ndarray] = None,
                   signif: Optional[np.ndarray] = None,
                   mode: str = 'magnitude',
                   cmap: str = 'viridis',
                   title: str = 'Scalogram',
                   return_fig: bool = False) -> Optional[Tuple["matplotlib.figure.Figure", "matplotlib.axes.Axes"]]:
    """
    Create and display a wavelet scalogram.

    Parameters
    ----------
    surface : numpy.ndarray or numpy.ma.MaskedArray
        Real values with shape (num_frequencies, n_times), typically from render.
    frequencies : array_like
        Frequencies of the rows.
    times : array_like, optional (default=None)
        Time values (numeric or datetime). If None, np.arange(n_times).
    coi : numpy.ndarray, optional (default=None)
        Lowest trusted frequency for each time.
    signif : numpy.ndarray, optional (default=None)
        Boolean significance array, same shape as surface.
    mode : str, optional (default='magnitude')
        Render mode, used for the colorbar label.
    cmap : str, optional (default='viridis')
        Matplotlib colormap name.
    title : str, optional (default='Scalogram')
        Title for the plot.
    return_fig : bool, optional (default=False)
        If True, returns the figure and axis objects instead of showing the plot.

    Returns
    -------
    fig, ax : matplotlib.figure.Figure, matplotlib.axes.Axes, optional
        Only if return_fig is True.

    Notes
    -----
    The frequency axis is logarithmic. The cone of influence is plotted as a
    white dashed line, with the unreliable region below it shaded gray.
    Masked values of the surface are drawn transparent under the shading.
    """
    import matplotlib.pyplot as plt
    import matplotlib.dates as mdates
    from datetime import datetime
    from pandas import Timestamp

    frequencies = np.asarray(frequencies, dtype=float)
    if surface.ndim != 2:
        raise ValueError(f'surface must be a 2D array, got shape {surface.shape}')
    if len(frequencies) != surface.shape[0]:
        raise ValueError(f'Length of frequencies ({len(frequencies)}) must match first dimension of surface ({surface.shape[0]})')
    if coi is not None and len(coi) != surface.shape[1]:
        raise ValueError(f'Length of coi ({len(coi)}) must match second dimension of surface ({surface.shape[1]})')
    if signif is not None and signif.shape != surface.shape:
        raise ValueError(f'Shape of signif {signif.shape} must match surface {surface.shape}')

    is_date = False
    if times is None:
        times = np.arange(surface.shape[1])
    elif isinstance(np.asarray(times)[0], (np.datetime64, datetime, Timestamp)):
        times = mdates.date2num(times)
        is_date = True
    times = np.asarray(times)
    if len(times) != surface.shape[1]:
        raise ValueError(f'Time vector length ({len(times)}) does not match surface dimension ({surface.shape[1]})')

    fig, ax = plt.subplots(figsize=(10, 6))

    # Unmasked values, the COI is drawn as an overlay
    values = np.ma.getdata(surface)
    mesh = ax.pcolormesh(times, frequencies, values, shading='auto', cmap=cmap)

    ax.set_yscale('log')
    ax.set_ylim([np.min(frequencies), np.max(frequencies)])
    ax.set_xlim([np.min(times), np.max(times)])
    ax.set_title(title)
    ax.set_ylabel('Frequency')
    if is_date:
        ax.xaxis_date()
        fig.autofmt_xdate()
        ax.set_xlabel('Date')
    else:
        ax.set_xlabel('Time')

    cbar = fig.colorbar(mesh, ax=ax)
    cbar.set_label({'magnitude': 'Magnitude',
                    'magnitude_squared': 'Power',
                    'magnitude_sqrt': 'Square-root magnitude'}.get(mode, 'Amplitude'))

    if coi is not None:
        coi_display = np.clip(coi, np.min(frequencies), np.max(frequencies))
        ax.plot(times, coi_display, 'w--', linewidth=2, label='Cone of Influence')
        ax.fill_between(times, coi_display, np.min(frequencies), facecolor='gray', alpha=0.6)

    if signif is not None and np.any(signif):
        ax.contour(times, frequencies, signif.astype(float), colors='k', linewidths=0.5, levels=[0.5])

    if return_fig:
        return fig, ax
    plt.tight_layout()
    plt.show()
