"""
Created on Mon Oct 19 2026
"""
# Standard library imports
from typing import Optional, Union, TYPE_CHECKING

# Third-party imports
import numpy as np

# Local imports
from cwtkit import basis
from cwtkit import data_utils
from cwtkit import grid_utils
from cwtkit import wt_utils

# Variable type hints
if TYPE_CHECKING:
    import pandas as pd
    from pandas.arrays import DatetimeArray
    from numpy.typing import ArrayLike


class Wavelet_Transform():
    '''
    Morlet Continuous Wavelet Transform (CWT) for signal analysis.

    This class computes the wavelet transform of 1D series data on a
    logarithmic frequency grid, with its cone of influence, optional
    significance levels and a scalogram.

    Signal Parameters
    ----------
    y : np.ndarray, pandas.Series, pandas.DataFrame, list, tuple, optional
        Array containing the series to be analyzed. If provided at initialization, the wavelet
        transform will be computed immediately. If y is a DataFrame/Series, time information is extracted
        from relevant columns ('xdata', 'time' or 'datetime') when available, or from the index (if datetime index).
        See function 'data_utils.extract_signal_and_time' for details.

    fs : float, int, optional (default=1)
        Sampling frequency in Hz.

    ts : float, int, optional
        Sampling period (alternative to fs).

    xdata : array_like, optional (default=None)
        X-axis for the signal. If provided, this will be used for plotting.

    Wavelet Parameters
    -----------------
    K : float, int, optional (default=6)
        Scale parameter of the Morlet wavelet. Larger values provide better
        frequency resolution but worse time resolution.

    Frequency Parameters
    ---------------
    f_start, fmin : float, int, optional (default=None)
        Lowest analysed frequency. Defaults to the lowest frequency keeping
        at least one trusted coefficient at the signal centre.

    f_end, fmax : float, int, optional (default=fs/4)
        Highest analysed frequency.

    Padding Parameters
    -----------------
    pad : str, optional (default='zpd')
        Signal padding method:
        - 'zpd': Zero padding
        - 'sym': Symmetric padding (mirroring)
        - 'ref': Reflection padding (symmetric excluding boundaries)
        - 'per': Periodic padding
        - 'non': No padding

    padmode : str, optional (default='b')
        Which side(s) of the signal to pad: 'l', 'r' or 'b'.

    Cone of influence Parameters
    ---------------------------
    coi : bool, optional (default=True)
        Whether to compute the cone of influence (region where edge
        effects are significant).

    coimethod : str, optional (default='ana')
        - 'ana' or 'analytic': Closed-form boundary
        - 'num' or 'numeric': Numerical computation with impulses

    percentout : float, optional (default=0.02)
        Envelope value at the signal edge above which coefficients are
        considered corrupted (0-1 range).

    Significance Parameters
    -----------------
    signif : bool, optional (default=False)
        Whether to test the wavelet power against a red-noise background.
    lag1 : float, optional (default=None)
        Lag-1 autocorrelation of the background. Estimated from the signal if None.
    prob : float, optional (default=0.95)
        Confidence level.

    Rendering Parameters
    -----------------
    mode : str, optional (default='magnitude')
        'magnitude', 'magnitude_squared' or 'magnitude_sqrt'.
    downsample : bool, optional (default=True)
        Whether to reduce the time axis of the rendered surface.
    figure : bool, optional (default=False)
        Whether to generate a scalogram plot automatically.

    Processing Parameters
    --------------------
    use_pyfftw : bool, optional (default=False)
        Whether to use pyfftw for FFT.
    parallel_proc : bool, optional (default=False)
        Whether to compute the frequency rows in a thread pool.
    workers : int, optional (default=None)
        Number of threads. If None, uses the number of CPU cores - 1.
    chunk_size : int, optional (default=None)
        Number of frequency rows per task.

    Attributes
    ----------
    wave : numpy.ndarray
        Complex wavelet coefficients, shape (num_frequencies, n)

    frequencies : numpy.ndarray
        Analysed frequencies

    times : numpy.ndarray
        Sample times

    coi : numpy.ndarray or None
        Lowest trusted frequency for each sample (if computed)

    signif : numpy.ndarray or None
        Boolean significance array (if computed)

    surface : numpy.ma.MaskedArray
        Rendered surface, see grid_utils.render

    surface_signif : numpy.ndarray or None
        Significance array on the times of the rendered surface
    '''

    def __init__(self,
                 y: Optional[Union["ArrayLike", "pd.Series", "pd.DataFrame"]] = None,
                 **args):
        """
        Initialize the Wavelet_Transform object.

        Parameters
        ----------
        y : array_like, optional
            Array containing the series to be analyzed. If provided,
            the wavelet transform will be computed immediately.
        **args : dict
            Keyword arguments for configuring the wavelet transform.
            See class docstring for full parameter details.
        """
        # Import and adjust parameters of the transform, define the wavelet
        self.import_arguments(**args)

        self.coi = None
        self.signif = None

        # Run cwt if signal provided
        if y is not None:
            self.cwt(y, xdata=self.xdata)

    def import_arguments(self, **args):
        '''
        Importing arguments and setting parameters

        Notes
        -----
        Uses `data_utils.get_args` to validate the keyword arguments.
        '''
        self.params, self.render_params, self.flags, self.processing, self.xdata = data_utils.get_args(**args)
        self.wavelet = basis.define_wavelet(self.params['K'])

    def cwt(self,
            y: Union["ArrayLike", "pd.Series", "pd.DataFrame"],
            xdata: Optional[Union["ArrayLike", "pd.Series", "pd.DatetimeIndex", "DatetimeArray"]] = None):
        """
        Compute the Continuous Wavelet Transform of a signal.

        Parameters
        ----------
        y : array_like
            Input signal to analyze.
        xdata : array_like, pandas.Series, pandas.DatetimeIndex, pandas.arrays.DatetimeArray, optional (default=None)
            X-axis data for plotting.

        Returns
        -------
        None
            Results are stored as attributes of the class instance.

        Notes
        -----
        This method performs these steps in sequence:
        1. Extract signal and time data
        2. Resolve the frequency range
        3. Compute wavelet coefficients (padding applied and removed)
        4. Compute cone of influence (if requested)
        5. Calculate significance levels (if requested)
        6. Render the surface
        7. Generate scalogram plot (if requested)
        """
        # Extract signal and xdata
        self.y, self.xdata = data_utils.extract_signal_and_time(y, xdata)
        self.params['n'] = n = len(self.y)
        self.times = np.arange(n) * self.params['dt']

        # Frequency range
        f_end = self.params['f_end']
        f_start = self.params['f_start']
        if f_start is None:
            _, coi = grid_utils.compute_coi(0, (n - 1) * self.params['dt'], self.params['fs'],
                                            self.wavelet, self.params['percentout'])
            f_start = np.min(coi)
            if f_start >= f_end:
                raise ValueError(f'Signal too short: lowest trusted frequency ({f_start:g}) is not below '
                                 f'f_end ({f_end:g}). Please provide a longer signal or a lower K')

        # Compute wavelet coefficients
        workers = self.processing['workers']
        if self.processing['parallel_proc'] and workers is None:
            from multiprocessing import cpu_count
            workers = max(1, cpu_count() - 1)  # Leave one core free
        self.wave, self.frequencies = grid_utils.wavelet_grid(
            self.y, self.wavelet, f_start, f_end, self.params['fs'],
            self.params['pad'], self.params['padmode'], self.processing['use_pyfftw'],
            workers, self.processing['chunk_size'])

        # Cone of influence
        if self.flags['coi']:
            self.compute_coi()
        else:
            self.coi = None

        # Significance
        if self.flags['signif']:
            self.compute_signif()
        else:
            self.signif = None

        # Surface
        self.render()

        # Scalogram
        if self.flags['figure']:
            self.scalogram()

    def transform_at(self,
                     omega_a: float,
                     method: str = 'fourier') -> np.ndarray:
        '''
        Wavelet coefficients of the current signal at a single analysis frequency

        Parameters
        ----------
        omega_a : float
            Analysis angular frequency (rad per unit time).
        method : str, optional (default='fourier')
            'fourier' (FFT product) or 'direct' (time-domain sum).

        Returns
        -------
        numpy.ndarray
            Complex coefficients, one per sample.
        '''
        if not hasattr(self, 'y'):
            raise AttributeError('No signal found. Please run cwt first.')

        method = str(method).lower()[:3]
        if method == 'fou':
            return wt_utils.wavelet_transform_fourier(self.y, omega_a, self.wavelet, self.params['fs'],
                                                      self.params['pad'], self.params['padmode'],
                                                      self.processing['use_pyfftw'])
        if method == 'dir':
            return wt_utils.wavelet_transform_direct(self.y, omega_a, self.wavelet, self.params['fs'])
        raise ValueError(f'Method "{method}" invalid. Please use "fourier" or "direct"')

    def compute_coi(self):
        '''
        Compute the cone of influence (coi)

        Notes
        -----
        It can be computed in two ways ('coimethod' parameter):
        1. Closed-form boundary from the Gaussian envelope ('ana')
        2. Response to impulses on signal borders ('num')
        '''
        if not hasattr(self, 'wave'):
            raise AttributeError('wave attribute not found. Please run cwt first.')

        n = self.params['n']
        percentout = self.params['percentout']
        if self.params['coimethod'] == 'num':
            self.coi = grid_utils.compute_coi_impulse(n, self.params['fs'], self.wavelet,
                                                      self.frequencies, percentout)
        else:
            _, self.coi = grid_utils.compute_coi(0, (n - 1) * self.params['dt'], self.params['fs'],
                                                 self.wavelet, percentout, 'f', self.frequencies)

    def compute_signif(self, lag1: Optional[float] = None):
        '''
        Compute the significance of the wavelet power

        Parameters
        ----------
        lag1 : float, optional (default=None)
            Lag-1 autocorrelation of the background. Defaults to the 'lag1'
            parameter, estimated from the signal if missing.
        '''
        if not hasattr(self, 'wave'):
            raise AttributeError('wave attribute not found. Please run cwt first.')

        if lag1 is None:
            lag1 = self.params['lag1']
        self.signif = grid_utils.compute_significance(self.y, self.wave, self.frequencies,
                                                      self.wavelet, self.params['fs'], lag1,
                                                      self.params['prob'], self.params['pad'],
                                                      self.params['padmode'])

    def render(self, mode: Optional[str] = None) -> np.ma.MaskedArray:
        '''
        Render the wavelet coefficients as a real surface

        Parameters
        ----------
        mode : str, optional (default=None)
            Render mode. Defaults to the 'mode' parameter.

        Returns
        -------
        numpy.ma.MaskedArray
            The surface, also stored in attribute surface (with
            surface_times, surface_coi and surface_signif).
        '''
        if not hasattr(self, 'wave'):
            raise AttributeError('wave attribute not found. Please run cwt first.')

        if mode is None:
            mode = self.render_params['mode']
        self.surface, self.surface_times, self.surface_coi = grid_utils.render(
            self.wave, self.frequencies, self.coi, mode, self.times,
            self.wavelet, self.params['fs'], self.render_params['downsample'])
        self.render_params['mode'] = mode
        self.surface_signif = self._surface_signif()
        return self.surface

    def _surface_signif(self) -> Optional[np.ndarray]:
        # Significance on the (possibly down-sampled) surface times
        if self.signif is None:
            return None
        return grid_utils.resample_significance(self.signif, self.times, self.surface_times)

    def scalogram(self, return_fig: bool = False):
        '''
        Plot the scalogram of the rendered surface

        Parameters
        ----------
        return_fig : bool, optional (default=False)
            If True, returns (fig, ax) instead of showing the plot.
        '''
        if not hasattr(self, 'surface'):
            self.render()

        times = self.surface_times
        # Datetime x-axis only when no down-sampling happened
        if self.xdata is not None and len(self.xdata) == len(times):
            times = self.xdata

        # compute_signif may have run after render
        self.surface_signif = self._surface_signif()

        return grid_utils.plot_scalogram(self.surface, self.frequencies, times, self.surface_coi,
                                         self.surface_signif, self.render_params['mode'],
                                         return_fig=return_fig)
