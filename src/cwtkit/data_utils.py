"""
Created on Mon Oct 19 2026

Argument validation, signal extraction and padding helpers.
"""
# Standard library imports
from typing import Any, Callable, Dict, Optional, Tuple, Union, TYPE_CHECKING

# Third-party imports
import numpy as np
from numpy.typing import ArrayLike

# Variable type hints
if TYPE_CHECKING:
    import pandas as pd
    from pandas.arrays import DatetimeArray


def get_args(**kwargs) -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, bool], Dict[str, Any], Optional[ArrayLike]]:
    """
    Process and validate the parameters of a wavelet analysis.

    This function validates user inputs, handles defaults and aliases, resolves
    conflicts, and organizes parameters into logically grouped dictionaries.

    Parameters
    ----------
    **kwargs : dict
        Keyword arguments for configuring the analysis
        (see Wavelet_Transform class docstring for details):

        - Signal: fs, ts, xdata
        - Wavelet: K
        - Frequency range: f_start (fmin), f_end (fmax)
        - Padding: pad, padmode
        - Cone of influence: coi, coimethod, percentout
        - Significance: signif, lag1, prob
        - Rendering: mode, downsample, figure
        - Processing: use_pyfftw, parallel_proc, workers, chunk_size

    Returns
    -------
    params : dict
        Sampling, wavelet, frequency range, padding and COI parameters.
    render_params : dict
        Rendering parameters ('mode', 'downsample').
    flags : dict
        Boolean flags ('coi', 'signif', 'figure').
    processing : dict
        FFT backend and parallelization parameters.
    xdata : array_like or None
        X-axis data for plotting.

    Raises
    ------
    ValueError
        Unknown parameter, invalid value or inconsistent frequency range.
    TypeError
        Parameter of incorrect type.
    """
    import warnings

    VALID_OPTIONS = {
        'pad': {'zpd', 'ref', 'sym', 'per', 'non'},
        'padmode': {'r', 'b', 'l'},
        'coimethod': {'ana', 'num'},
        'mode': {'magnitude', 'magnitude_squared', 'magnitude_sqrt'},
    }

    param_specs = {
        # Sampling
        'fs': {'default': None, 'type': (float, int),
               'validate': lambda v: v > 0,
               'error_msg': 'Invalid sampling frequency "{value}". Please specify a positive value'},
        'ts': {'default': None, 'type': (float, int),
               'validate': lambda v: v > 0,
               'error_msg': 'Invalid sampling period "{value}". Please specify a positive value'},

        # Wavelet
        'K': {'default': 6, 'type': (float, int),
              'validate': lambda v: v > 0,
              'error_msg': 'Invalid K value "{value}". Please specify a positive value'},

        # Frequency range
        'f_start': {'default': None, 'type': (float, int), 'alias': 'fmin',
                    'validate': lambda v: v > 0,
                    'error_msg': 'Invalid f_start value "{value}". Please specify a positive value'},
        'f_end': {'default': None, 'type': (float, int), 'alias': 'fmax',
                  'validate': lambda v: v > 0,
                  'error_msg': 'Invalid f_end value "{value}". Please specify a positive value'},

        # Padding
        'pad': {'default': 'zpd',
                'transform': lambda v: str(v).lower()[:3],
                'validate': lambda v: v in VALID_OPTIONS['pad']},
        'padmode': {'default': 'b',
                    'transform': lambda v: str(v).lower()[0],
                    'validate': lambda v: v in VALID_OPTIONS['padmode']},

        # Cone of influence
        'coi': {'default': True, 'type': bool},
        'coimethod': {'default': 'ana',
                      'transform': lambda v: str(v).lower()[:3],
                      'validate': lambda v: v in VALID_OPTIONS['coimethod']},
        'percentout': {'default': 0.02, 'type': float,
                       'validate': lambda v: 0 < v < 1,
                       'error_msg': 'Invalid percentout value "{value}". Please specify a value in range (0,1)'},

        # Significance
        'signif': {'default': False, 'type': bool},
        'lag1': {'default': None, 'type': (float, int),
                 'validate': lambda v: -1 < v < 1,
                 'error_msg': 'Invalid lag1 value "{value}". Please specify a value in range (-1,1)'},
        'prob': {'default': 0.95, 'type': float,
                 'validate': lambda v: 0 < v < 1,
                 'error_msg': 'Invalid prob value "{value}". Please specify a value in range (0,1)'},

        # Rendering
        'mode': {'default': 'magnitude',
                 'transform': lambda v: str(v).lower(),
                 'validate': lambda v: v in VALID_OPTIONS['mode']},
        'downsample': {'default': True, 'type': bool},
        'figure': {'default': False, 'type': bool},

        # Processing
        'use_pyfftw': {'default': False, 'type': bool},
        'parallel_proc': {'default': False, 'type': bool},
        'workers': {'default': None, 'type': int,
                    'validate': lambda v: v > 0,
                    'error_msg': 'Invalid workers value "{value}". Please specify a positive integer'},
        'chunk_size': {'default': None, 'type': int,
                       'validate': lambda v: v > 0,
                       'error_msg': 'Invalid chunk_size value "{value}". Please specify a positive integer'},

        # Data
        'xdata': {'default': None}
    }

    args = {name: spec['default'] for name, spec in param_specs.items()}
    aliases = {spec['alias']: name for name, spec in param_specs.items() if 'alias' in spec}

    for key, value in kwargs.items():
        if value is None:
            continue

        param_name = aliases.get(key, key)
        if param_name not in param_specs:
            raise ValueError(f'Input Argument "{key}" not recognized. Please refer to the documentation')
        spec = param_specs[param_name]

        if 'transform' in spec:
            try:
                value = spec['transform'](value)
            except Exception as e:
                raise ValueError(f"Failed to transform {param_name}: {e}")

        # bool is a subclass of int, refuse it for numeric parameters
        if 'type' in spec:
            types = spec['type'] if isinstance(spec['type'], tuple) else (spec['type'],)
            if (isinstance(value, bool) and bool not in types) or not isinstance(value, types):
                type_names = [t.__name__ for t in types]
                raise TypeError(f"{param_name} must be {' or '.join(type_names)}, not {type(value).__name__}")

        if 'validate' in spec and not spec['validate'](value):
            error_msg = spec.get('error_msg', f"Invalid value for {param_name}: {value}")
            if '{value}' in error_msg:
                error_msg = error_msg.format(value=value)
            raise ValueError(error_msg)

        args[param_name] = value

    # Sampling frequency from fs or ts
    if args['ts'] is not None and args['fs'] is not None:
        if not np.isclose(args['ts'] * args['fs'], 1):
            raise ValueError(f"Sampling period (ts={args['ts']}) and frequency (fs={args['fs']}) are inconsistent")
    if args['fs'] is None:
        if args['ts'] is None:
            args['fs'] = 1
            warnings.warn('Sampling frequency fixed to 1 (adimensional)', UserWarning, stacklevel=2)
        else:
            args['fs'] = 1 / args['ts']
    fs = float(args['fs'])

    # Highest analysed frequency
    if args['f_end'] is None:
        args['f_end'] = fs / 4

    if args['f_start'] is not None and args['f_start'] >= args['f_end']:
        raise ValueError(f"f_start ({args['f_start']}) must be lower than f_end ({args['f_end']})")

    if args['workers'] is not None or args['chunk_size'] is not None:
        args['parallel_proc'] = True

    params = {
        'fs': fs,
        'dt': 1 / fs,
        'K': float(args['K']),
        'f_start': args['f_start'],
        'f_end': float(args['f_end']),
        'pad': args['pad'],
        'padmode': args['padmode'],
        'coimethod': args['coimethod'],
        'percentout': args['percentout'],
        'lag1': args['lag1'],
        'prob': args['prob'],
    }
    render_params = {
        'mode': args['mode'],
        'downsample': args['downsample'],
    }
    flags = {
        'coi': args['coi'],
        'signif': args['signif'],
        'figure': args['figure'],
    }
    processing = {
        'use_pyfftw': args['use_pyfftw'],
        'parallel_proc': args['parallel_proc'],
        'workers': args['workers'],
        'chunk_size': args['chunk_size'],
    }

    return params, render_params, flags, processing, args['xdata']


def check_signal(y: ArrayLike) -> np.ndarray:
    """
    Convert a signal to a 1-D float array and check its shape.

    Parameters
    ----------
    y : array_like
        Real-valued samples.

    Returns
    -------
    numpy.ndarray
        Copy of the signal as float64.

    Raises
    ------
    TypeError
        If the signal is complex-valued or not numeric.
    ValueError
        If the signal is empty, not one-dimensional or contains NaN/Inf.
    """
    y = np.asarray(y)
    if np.iscomplexobj(y):
        raise TypeError('Signal must be real-valued, got complex samples')
    try:
        y = np.array(y, dtype=float)
    except (TypeError, ValueError) as e:
        raise TypeError(f'Signal must contain numeric values: {e}')
    y = np.squeeze(y) if y.ndim > 1 else y
    if y.ndim != 1:
        raise ValueError(f'Signal must be one-dimensional, got shape {y.shape}')
    if y.size == 0:
        raise ValueError('Signal must contain at least one sample (zero-length input)')
    if not np.all(np.isfinite(y)):
        raise ValueError('Signal contains NaN or infinite values')
    return y


def check_sampling(fs: Union[int, float]) -> float:
    """Validate a sampling frequency and return it as float."""
    if isinstance(fs, bool) or not isinstance(fs, (int, float, np.integer, np.floating)):
        raise TypeError(f'fs must be int or float, not {type(fs).__name__}')
    if not fs > 0:
        raise ValueError(f'Invalid sampling frequency "{fs}". Please specify a positive value')
    return float(fs)


def extract_signal_and_time(y: Union[ArrayLike, "pd.DataFrame", "pd.Series"],
                            xdata: Optional[Union[ArrayLike, "pd.Series", "pd.DatetimeIndex", "DatetimeArray"]] = None
                            ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Extract signal data and x-axis information from various input types.

    Parameters
    ----------
    y : array_like, pandas.Series or pandas.DataFrame
        The input signal. Can be:
        - A numpy array, list or tuple (1D, or 2D with a single row/column)
        - A pandas Series
        - A pandas DataFrame: the first column that is not 'xdata', 'time' or
          'datetime' is the signal
    xdata : array_like, pandas.Series, pandas.DatetimeIndex, pandas.arrays.DatetimeArray, optional
        Custom x-axis data for plotting. Default is None.

    Returns
    -------
    y : numpy.ndarray
        The signal as a 1-D float array.
    xdata : numpy.ndarray or None
        X-axis data (from the argument, a DataFrame column named 'xdata',
        'time' or 'datetime', or a datetime index), or None.

    Raises
    ------
    TypeError
        If the input data type is not supported.
    ValueError
        If the signal is empty or xdata length does not match.
    """
    import pandas as pd

    if isinstance(y, pd.DataFrame):
        if y.empty:
            raise ValueError('y must contain at least one signal (DataFrame is empty)')
        cols = list(y.columns)
        columns_lower = [str(col).lower() for col in cols]
        time_cols = [cols[columns_lower.index(name)] for name in ('xdata', 'time', 'datetime')
                     if name in columns_lower]

        if xdata is None:
            if time_cols:
                xdata = y[time_cols[0]]
            elif pd.api.types.is_datetime64_any_dtype(y.index):
                xdata = y.index

        signal_cols = [col for col in cols if col not in time_cols]
        if not signal_cols:
            raise ValueError('DataFrame does not contain any signal column')
        if len(signal_cols) > 1:
            import warnings
            warnings.warn(f'Only column "{signal_cols[0]}" of y considered as signal. '
                          'Other columns are ignored.', UserWarning, stacklevel=2)
        y = y[signal_cols[0]].to_numpy()

    elif isinstance(y, pd.Series):
        if y.empty:
            raise ValueError('y must contain at least one sample (Series is empty)')
        if xdata is None and pd.api.types.is_datetime64_any_dtype(y.index):
            xdata = y.index
        y = y.to_numpy()

    elif not isinstance(y, (np.ndarray, list, tuple)) and not hasattr(y, '__array__'):
        raise TypeError(f'y must be a numeric array, not a {type(y).__name__}')

    y = check_signal(y)

    if xdata is not None:
        xdata = np.asarray(xdata)
        if len(xdata) != len(y):
            raise ValueError(f'xdata length ({len(xdata)}) does not match signal length ({len(y)})')

    return y, xdata


def sig_length_and_padding(n: int,
                           pad: str = 'zpd',
                           padmode: str = 'b',
                           support: int = 0
                           ) -> Tuple[Optional[Callable[[np.ndarray], np.ndarray]],
                                      Optional[Callable[[np.ndarray], np.ndarray]], int]:
    """
    Provide functions to apply and remove padding.

    Parameters
    ----------
    n : int
        Length of the signal to be padded.
    pad : str, optional (default='zpd')
        Padding method:
        - 'non': No padding (circular FFT product)
        - 'zpd': Zero padding
        - 'sym': Symmetric padding (mirror reflection repeating edge values)
        - 'ref': Reflection padding (mirror reflection without edge values)
        - 'per': Periodic padding (repeating the signal)
    padmode : str, optional (default='b')
        Where to apply padding: 'r' (right), 'l' (left) or 'b' (both sides).
    support : int, optional (default=0)
        Full width of the widest kernel, in samples. The padding is at least
        this long, so the circular FFT product does not wrap the kernel onto
        the other end of the signal.

    Returns
    -------
    apply_padding : callable or None
        Function padding a 1-D signal. None if no padding.
    remove_padding : callable or None
        Function removing the padding along the last axis of coefficients.
        None if no padding.
    n_ext : int
        Padded signal length.

    Notes
    -----
    The padded length is a power of two, at least 2**(round(log2(n)) + 1)
    (larger than sqrt(2)*n) and at least n + support. Coefficients use lags
    below n, which the circular product aliases with lags n_ext apart: the
    kernel must have vanished past n_ext - n samples.
    """
    pad = str(pad).lower()[:3]
    padmode = str(padmode).lower()[0]
    if pad not in ('non', 'zpd', 'sym', 'ref', 'per'):
        raise ValueError(f'Padding method "{pad}" invalid. Please use zpd, sym, ref, per or none')
    if padmode not in ('r', 'l', 'b'):
        raise ValueError(f'Padding mode "{padmode}" invalid. Please use r, l or b')

    if pad == 'non':
        return None, None, n

    np_modes = {'zpd': 'constant', 'sym': 'symmetric', 'ref': 'reflect', 'per': 'wrap'}
    mode = np_modes[pad]
    # numpy cannot reflect a single sample
    if n == 1 and mode == 'reflect':
        mode = 'symmetric'

    if isinstance(support, bool) or not isinstance(support, (int, np.integer)) or support < 0:
        raise ValueError(f'Kernel support must be a non-negative integer, got {support}')

    base = int(np.log2(n) + 0.4999)
    n_ext = 2**(base + 1)
    min_length = n + int(support)
    if n_ext < min_length:
        n_ext = 2**int(np.ceil(np.log2(min_length)))
    ext = n_ext - n
    if padmode == 'r':
        left_ext, right_ext = 0, ext
    elif padmode == 'l':
        left_ext, right_ext = ext, 0
    else:
        left_ext = int(np.ceil(ext / 2))
        right_ext = ext - left_ext

    def apply_padding(x):
        return np.pad(x, (left_ext, right_ext), mode=mode)

    def remove_padding(x):
        return x[..., left_ext:left_ext + n]

    return apply_padding, remove_padding, n_ext
