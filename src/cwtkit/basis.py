"""
Created on Mon Oct 19 2026

Analysis kernels: DFT basis vectors and the complex Morlet wavelet
(time-domain and closed-form Fourier-domain expressions).
"""
# Standard library imports
from typing import Any, Dict, Union

# Third-party imports
import numpy as np
from numpy.typing import ArrayLike

# Smallest analysis angular frequency accepted by the Fourier-domain formulas
MIN_ANALYSIS_OMEGA = 1e-10


def dft_basis(N: int, k: int) -> np.ndarray:
    """
    Compute the k-th basis vector of the Discrete Fourier Transform.

    Parameters
    ----------
    N : int
        Number of samples (positive).
    k : int
        Frequency index, in range [0, N-1].

    Returns
    -------
    numpy.ndarray
        Complex vector exp(-i*2*pi*k*n/N) for n = 0..N-1.

    Notes
    -----
    The product k*n is reduced modulo N before scaling, so the phase stays
    exact for long vectors. Two vectors with distinct indices are orthogonal
    under `inner_product`.
    """
    N = check_length(N)
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise TypeError(f'Frequency index k must be an integer, not {type(k).__name__}')
    if not 0 <= k < N:
        raise ValueError(f'Frequency index k={k} out of range [0, {N - 1}]')

    n = np.arange(N)
    return np.exp(-2j * np.pi * ((k * n) % N) / N)


def dft_basis_matrix(N: int) -> np.ndarray:
    """
    Stack all N basis vectors into an N x N matrix (row k = dft_basis(N, k)).
    """
    N = check_length(N)
    n = np.arange(N)
    return np.exp(-2j * np.pi * (np.outer(n, n) % N) / N)


def inner_product(u: ArrayLike, v: ArrayLike) -> complex:
    """Hermitian inner product sum(conj(u) * v)."""
    return np.vdot(np.asarray(u), np.asarray(v))


def morlet_time(omega_a: float,
                K: float,
                t_k: float,
                t: ArrayLike) -> np.ndarray:
    """
    Evaluate the complex Morlet wavelet in the time domain.

    Parameters
    ----------
    omega_a : float
        Analysis angular frequency (rad per unit time).
    K : float
        Scale parameter (> 0). Larger values widen the Gaussian envelope,
        trading time resolution for frequency resolution.
    t_k : float
        Centre time of the wavelet.
    t : array_like
        Times at which the wavelet is evaluated.

    Returns
    -------
    numpy.ndarray
        (exp(-i*omega_a*(t-t_k)) - exp(-K**2)) * exp(-omega_a**2*(t-t_k)**2/(2*K)**2)
    """
    K = check_scale(K)
    tau = np.asarray(t, dtype=float) - t_k
    oscillation = np.exp(-1j * omega_a * tau) - np.exp(-K**2)
    envelope = np.exp(-omega_a**2 * tau**2 / (2 * K)**2)
    return oscillation * envelope


def morlet_fourier(K: float,
                   omega_a: float,
                   omega: ArrayLike) -> np.ndarray:
    """
    Closed-form spectrum of the Morlet wavelet.

    Parameters
    ----------
    K : float
        Scale parameter (> 0).
    omega_a : float
        Analysis frequency, in the same unit as omega.
    omega : array_like
        Frequencies at which the spectrum is evaluated.

    Returns
    -------
    numpy.ndarray
        2*(exp(-(K*(omega-omega_a)/omega_a)**2) - exp(-K**2)*exp(-(K*omega/omega_a)**2))

    Notes
    -----
    Only the ratio omega/omega_a enters the formula: angular frequencies,
    Hertz or fractional DFT bins are all valid as long as omega and omega_a
    share the unit. |omega_a| is clamped to MIN_ANALYSIS_OMEGA.
    """
    K = check_scale(K)
    omega_a = clamp_omega(omega_a)
    omega = np.asarray(omega, dtype=float)
    return 2 * (np.exp(-(K * (omega - omega_a) / omega_a)**2)
                - np.exp(-K**2) * np.exp(-(K * omega / omega_a)**2))


def morlet_sigma(omega_a: float, K: float) -> float:
    """Standard deviation of the Morlet Gaussian envelope (sqrt(2)*K/|omega_a|)."""
    K = check_scale(K)
    return np.sqrt(2) * K / abs(clamp_omega(omega_a))


def morlet_norm(omega_a: float, K: float) -> float:
    """Time integral of the Morlet envelope divided by 2 (K*sqrt(pi)/|omega_a|)."""
    K = check_scale(K)
    return K * np.sqrt(np.pi) / abs(clamp_omega(omega_a))


def morlet_coi_factor(K: float, percentout: float = 0.02) -> float:
    """
    Lowest trusted frequency times distance to the edge: K*sqrt(-ln(percentout))/pi.

    At distance d from the edge the Gaussian envelope of the wavelet at
    frequency f is exp(-(pi*f*d/K)**2); the coefficient is trusted once this
    value drops below percentout.
    """
    K = check_scale(K)
    if not isinstance(percentout, float) or not (0 < percentout < 1):
        raise ValueError(f'Percentage {percentout} inadmissible. Must be a float in the range (0, 1)')
    return K * np.sqrt(-np.log(percentout)) / np.pi


def morlet_support(omega_a: float,
                   K: float,
                   percentout: float = 0.02,
                   metric: str = 'int') -> float:
    """
    Compute the time support of the Morlet wavelet.

    Parameters
    ----------
    omega_a : float
        Analysis angular frequency (rad per unit time).
    K : float
        Scale parameter (> 0).
    percentout : float, optional (default=0.02)
        Fraction (0-1) of the envelope metric allowed outside the support.
    metric : str, optional (default='int')
        'int'/'integral' (area of the envelope) or 'ene'/'energy'
        (area of the squared envelope).

    Returns
    -------
    float
        Full width of the support (both sides), in time units.
    """
    from scipy.special import erfinv

    if not isinstance(percentout, float) or not (0 < percentout < 1):
        raise ValueError(f'Support computation: percentout must be a float in range (0, 1), got {percentout}')

    metric = str(metric)[:3].lower()
    sigma = morlet_sigma(omega_a, K)
    if metric == 'int':
        half_width = erfinv(1 - percentout) * np.sqrt(2) * sigma
    elif metric == 'ene':
        half_width = erfinv(1 - percentout) * sigma
    else:
        raise ValueError(f"Support computation: Metric '{metric}' invalid. "
                         "Please use 'integral' or 'energy'")

    return 2 * half_width


def define_wavelet(K: Union[int, float] = 6) -> Dict[str, Any]:
    """
    Define the Morlet wavelet family for a given scale parameter.

    Parameters
    ----------
    K : int or float, optional (default=6)
        Scale parameter (> 0).

    Returns
    -------
    dict
        Dictionary containing wavelet properties:
        - 'name': wavelet name ('mor')
        - 'K': scale parameter
        - 'is_complex': True
        - 'psi': function (omega_a, t_k, t) -> wavelet in time domain
        - 'psi_fft': function (omega_a, omega) -> wavelet spectrum
        - 'norm': function (omega_a) -> factor linking the sampled kernel
          spectrum to psi_fft (times fs)
        - 'sigma': function (omega_a) -> envelope standard deviation
        - 'support': function (omega_a, percentout, metric) -> support width
        - 'coi_factor': function (percentout) -> lowest trusted frequency
          times distance to the edge

    Examples
    --------
    >>> wavelet = define_wavelet(2)
    >>> kernel = wavelet['psi'](2 * np.pi * 100, 0.0, np.arange(64) / 8000)
    """
    K = check_scale(K)

    def psi(omega_a, t_k, t):
        return morlet_time(omega_a, K, t_k, t)

    def psi_fft(omega_a, omega):
        return morlet_fourier(K, omega_a, omega)

    def norm(omega_a):
        return morlet_norm(omega_a, K)

    def sigma(omega_a):
        return morlet_sigma(omega_a, K)

    def support(omega_a, percentout=0.02, metric='int'):
        return morlet_support(omega_a, K, percentout, metric)

    def coi_factor(percentout=0.02):
        return morlet_coi_factor(K, percentout)

    return {
        'name': 'mor',
        'K': K,
        'is_complex': True,
        'psi': psi,
        'psi_fft': psi_fft,
        'norm': norm,
        'sigma': sigma,
        'support': support,
        'coi_factor': coi_factor
    }


def as_wavelet(wavelet: Union[int, float, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Return a wavelet dictionary, built with define_wavelet when given a scale parameter K.
    """
    if isinstance(wavelet, dict):
        missing = {'K', 'psi', 'psi_fft', 'norm', 'support', 'coi_factor'} - set(wavelet)
        if missing:
            raise ValueError(f'Wavelet dictionary is missing keys: {", ".join(sorted(missing))}')
        return wavelet
    return define_wavelet(wavelet)


def clamp_omega(omega_a: float) -> float:
    """
    Keep an analysis frequency away from zero (sign preserved).
    """
    import warnings

    if not np.isfinite(omega_a):
        raise ValueError(f'Analysis frequency must be finite, got {omega_a}')
    if abs(omega_a) < MIN_ANALYSIS_OMEGA:
        warnings.warn(f'Analysis frequency {omega_a} too close to zero, '
                      f'clamped to {MIN_ANALYSIS_OMEGA}', UserWarning, stacklevel=3)
        return MIN_ANALYSIS_OMEGA if omega_a >= 0 else -MIN_ANALYSIS_OMEGA
    return float(omega_a)


def check_scale(K: Union[int, float]) -> float:
    if isinstance(K, bool) or not isinstance(K, (int, float, np.integer, np.floating)):
        raise TypeError(f'K must be int or float, not {type(K).__name__}')
    if not K > 0:
        raise ValueError(f'Invalid K value "{K}". Please specify a positive value')
    return float(K)


def check_length(N: int) -> int:
    if isinstance(N, bool) or not isinstance(N, (int, np.integer)):
        raise TypeError(f'N must be an integer, not {type(N).__name__}')
    if N <= 0:
        raise ValueError(f'N must be positive, got {N}')
    return int(N)
