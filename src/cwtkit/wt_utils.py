"""
Created on Mon Oct 19 2026

Transform engine: Discrete Fourier Transform (direct and matrix forms) and
Morlet wavelet transform (time-domain and Fourier-domain forms).
"""
# Standard library imports
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

# Third-party imports
import numpy as np
from numpy.typing import ArrayLike

# Local imports
from cwtkit import basis
from cwtkit import data_utils

# Envelope integral left outside the kernel support used for padding
SUPPORT_PERCENTOUT = 1e-12


def dft_direct(x: ArrayLike) -> np.ndarray:
    """
    Discrete Fourier Transform by explicit projection on each basis vector.

    Parameters
    ----------
    x : array_like
        Real-valued signal of length N.

    Returns
    -------
    numpy.ndarray
        N complex coefficients, X[k] = sum_n x[n] * exp(-i*2*pi*k*n/N).

    Notes
    -----
    O(N**2). Reference implementation used to check the faster forms.
    """
    x = data_utils.check_signal(x)
    N = len(x)

    X = np.zeros(N, dtype=np.complex128)
    for k in range(N):
        X[k] = np.sum(x * basis.dft_basis(N, k))
    return X


def dft_matrix(x: ArrayLike) -> np.ndarray:
    """
    Discrete Fourier Transform as one product with the N x N basis matrix.
    """
    x = data_utils.check_signal(x)
    return basis.dft_basis_matrix(len(x)) @ x


def wavelet_transform_direct(x: ArrayLike,
                             omega_a: float,
                             K: Union[int, float, Dict[str, Any]],
                             fs: Union[int, float] = 1,
                             t: Optional[ArrayLike] = None) -> np.ndarray:
    """
    Morlet wavelet transform computed in the time domain.

    Parameters
    ----------
    x : array_like
        Real-valued signal of length N.
    omega_a : float
        Analysis angular frequency (rad per unit time).
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    fs : int or float, optional (default=1)
        Sampling frequency, used to build the time vector when t is missing.
    t : array_like, optional (default=None)
        Sample times. Defaults to arange(N) / fs.

    Returns
    -------
    numpy.ndarray
        N complex coefficients. W[i] is the dot product of the signal with
        the conjugated wavelet centred on t[i].

    Notes
    -----
    O(N**2) per analysis frequency. The signal is taken as zero outside its
    support.
    """
    x = data_utils.check_signal(x)
    fs = data_utils.check_sampling(fs)
    wavelet = basis.as_wavelet(K)
    check_nyquist(omega_a, fs)

    n = len(x)
    if t is None:
        t = np.arange(n) / fs
    else:
        t = np.asarray(t, dtype=float)
        if t.shape != x.shape:
            raise ValueError(f'Time vector shape {t.shape} does not match signal shape {x.shape}')

    W = np.zeros(n, dtype=np.complex128)
    for i in range(n):
        kernel = wavelet['psi'](omega_a, t[i], t)
        W[i] = np.dot(x, np.conj(kernel))
    return W


def wavelet_transform_fourier(x: ArrayLike,
                              omega_a: float,
                              K: Union[int, float, Dict[str, Any]],
                              fs: Union[int, float] = 1,
                              pad: str = 'zpd',
                              padmode: str = 'b',
                              use_pyfftw: bool = False) -> np.ndarray:
    """
    Morlet wavelet transform computed by multiplication in the Fourier domain.

    Parameters
    ----------
    x : array_like
        Real-valued signal of length N.
    omega_a : float
        Analysis angular frequency (rad per unit time).
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    fs : int or float, optional (default=1)
        Sampling frequency.
    pad : str, optional (default='zpd')
        Padding method (see data_utils.sig_length_and_padding). Zero padding
        reproduces wavelet_transform_direct; 'none' gives the circular product.
    padmode : str, optional (default='b')
        Side(s) on which the signal is padded.
    use_pyfftw : bool, optional (default=False)
        Whether to use pyfftw for the FFTs.

    Returns
    -------
    numpy.ndarray
        N complex coefficients, equal to wavelet_transform_direct(x, omega_a, K, fs)
        within floating-point tolerance.

    Notes
    -----
    One forward FFT, one product with the kernel spectrum on every DFT bin,
    one inverse FFT: O(N log N).
    """
    return wavelet_transform_rows(x, [omega_a], K, fs, pad, padmode, use_pyfftw)[0]


def wavelet_transform_rows(x: ArrayLike,
                           omegas: Sequence[float],
                           K: Union[int, float, Dict[str, Any]],
                           fs: Union[int, float] = 1,
                           pad: str = 'zpd',
                           padmode: str = 'b',
                           use_pyfftw: bool = False,
                           workers: Optional[int] = None,
                           chunk_size: Optional[int] = None) -> np.ndarray:
    """
    Fourier-domain wavelet transform for several analysis frequencies.

    The signal is padded and transformed once; each analysis frequency adds
    one product and one inverse FFT. The padding covers the support of the
    widest kernel (lowest frequency).

    Returns
    -------
    numpy.ndarray
        Complex coefficients with shape (len(omegas), N).
    """
    x = data_utils.check_signal(x)
    fs = data_utils.check_sampling(fs)
    wavelet = basis.as_wavelet(K)
    omegas = np.atleast_1d(np.asarray(omegas, dtype=float))
    if omegas.ndim != 1 or omegas.size == 0:
        raise ValueError('At least one analysis frequency is required')
    for omega_a in omegas:
        check_nyquist(omega_a, fs)

    support = kernel_support(wavelet, omegas, fs)
    apply_padding, remove_padding, n_ext = data_utils.sig_length_and_padding(len(x), pad, padmode, support)
    y_ext = apply_padding(x) if apply_padding is not None else x

    psi = compute_psi(n_ext, fs, wavelet, omegas)
    wave = compute_wavelet_coef(y_ext, psi, use_pyfftw, workers, chunk_size)

    if remove_padding is not None:
        wave = remove_padding(wave)
    return wave


def kernel_support(wavelet: Dict[str, Any],
                   omegas: Sequence[float],
                   fs: Union[int, float],
                   percentout: float = SUPPORT_PERCENTOUT) -> int:
    """
    Full width, in samples, of the widest kernel among the analysis frequencies.

    Outside this width the envelope integral left is percentout (the
    envelope itself is below 1e-11 at the default).
    """
    omega_min = min(abs(basis.clamp_omega(omega_a)) for omega_a in np.atleast_1d(omegas))
    return int(np.ceil(wavelet['support'](omega_min, percentout) * fs))


def signed_bins(n: int) -> np.ndarray:
    """
    DFT bin indices in FFT order, negative indices for the upper half.
    """
    if n % 2:  # odd sample size
        w = np.arange(1, n // 2 + 1)
        return np.concatenate(([0], w, -w[::-1])).astype(float)
    # even sample size
    w = np.arange(1, n // 2 + 1)
    return np.concatenate(([0], w, -w[:-1][::-1])).astype(float)


def compute_psi(n: int,
                fs: Union[int, float],
                K: Union[int, float, Dict[str, Any]],
                omegas: Sequence[float]) -> np.ndarray:
    """
    Compute the kernel spectrum of the wavelet transform for each analysis frequency.

    Parameters
    ----------
    n : int
        Length of the (padded) signal.
    fs : int or float
        Sampling frequency.
    K : int, float or dict
        Scale parameter (> 0), or a wavelet dictionary from basis.define_wavelet.
    omegas : sequence of float
        Analysis angular frequencies (rad per unit time).

    Returns
    -------
    psi : numpy.ndarray
        Real array with shape (len(omegas), n), in FFT bin order.

    Notes
    -----
    Each analysis frequency is converted to its fractional DFT bin
    (omega_a / (2*pi) / fs * n), so psi_fft sees bin indices for both
    arguments. The spectrum is evaluated at -j: the transform correlates with
    the conjugated wavelet, whose spectrum is the reflected one.
    fs * wavelet['norm'](omega_a) links the sampled kernel to its
    closed-form spectrum.
    """
    wavelet = basis.as_wavelet(K)
    bins = signed_bins(n)

    psi = np.empty((len(omegas), n), dtype=float)
    for row, omega_a in enumerate(omegas):
        omega_a = basis.clamp_omega(omega_a)
        omega_bin = omega_a / (2 * np.pi) / fs * n
        psi[row] = fs * wavelet['norm'](omega_a) * wavelet['psi_fft'](omega_bin, -bins)
    return psi


def get_fft_backend(use_pyfftw: bool = False) -> Tuple[Callable, Callable]:
    """
    Return (fft, ifft) functions, from pyfftw if requested and installed,
    otherwise from scipy.fft.
    """
    import scipy.fft

    if use_pyfftw:
        try:
            import pyfftw
            import pyfftw.interfaces.scipy_fft as fftw_fft
        except ImportError:
            import warnings
            warnings.warn('pyfftw is not installed, using scipy.fft instead. '
                          'Install the "fftw" extra to enable it', UserWarning, stacklevel=3)
        else:
            from functools import partial
            from multiprocessing import cpu_count

            pyfftw.interfaces.cache.enable()
            threads = max(1, cpu_count() - 1)  # Leave one core free
            return partial(fftw_fft.fft, workers=threads), partial(fftw_fft.ifft, workers=threads)

    return scipy.fft.fft, scipy.fft.ifft


def compute_wavelet_coef(y: np.ndarray,
                         psi: np.ndarray,
                         use_pyfftw: bool = False,
                         workers: Optional[int] = None,
                         chunk_size: Optional[int] = None) -> np.ndarray:
    """
    Compute wavelet coefficients using the FFT convolution method.

    Parameters
    ----------
    y : numpy.ndarray
        Input (padded) signal.
    psi : numpy.ndarray
        Kernel spectra, with shape (n_frequencies, signal_length).
    use_pyfftw : bool, optional (default=False)
        Whether to use pyfftw for the FFTs.
    workers : int, optional (default=None)
        Number of threads computing chunks of rows. If None and chunk_size is
        set, uses the number of CPU cores - 1.
    chunk_size : int, optional (default=None)
        Number of rows processed at once. If None and workers is set, rows are
        split evenly between workers.

    Returns
    -------
    wave : numpy.ndarray
        Wavelet coefficients with shape (n_frequencies, signal_length).

    Notes
    -----
    The FFT of the signal is computed once. Rows are independent: chunks are
    fanned out to a thread pool (the FFTs release the GIL) and each writes a
    disjoint block of the output.
    """
    fft, ifft = get_fft_backend(use_pyfftw)
    n_rows, n_signal = psi.shape
    if len(y) != n_signal:
        raise ValueError(f'Signal length ({len(y)}) does not match kernel length ({n_signal})')

    y_ft = fft(y)

    # All rows at once
    if workers is None and chunk_size is None:
        try:
            return ifft(y_ft * psi, axis=-1)
        except MemoryError:
            print('Reducing precision of arrays to 64 bits due to memory shortage...')
            try:
                return ifft(y_ft.astype(np.complex64) * psi.astype(np.float32), axis=-1)
            except MemoryError:
                suggested_chunk = max(1, n_rows // 4)
                raise MemoryError(
                    'Not enough memory to compute all wavelet coefficients at once. '
                    f'Try setting chunk_size={suggested_chunk} to process in batches.'
                )

    if workers is None:
        from multiprocessing import cpu_count
        workers = max(1, cpu_count() - 1)
    if chunk_size is None:
        chunk_size = max(1, int(np.ceil(n_rows / workers)))

    wave = np.empty((n_rows, n_signal), dtype=np.complex128)
    chunk_indices = [(i, min(i + chunk_size, n_rows)) for i in range(0, n_rows, chunk_size)]

    def process_chunk(chunk):
        chunk_start, chunk_end = chunk
        wave[chunk_start:chunk_end] = ifft(y_ft * psi[chunk_start:chunk_end], axis=-1)

    if workers > 1 and len(chunk_indices) > 1:
        from concurrent.futures import ThreadPoolExecutor

        with ThreadPoolExecutor(max_workers=workers) as executor:
            # list() re-raises the first exception of a worker
            list(executor.map(process_chunk, chunk_indices))
    else:
        for chunk in chunk_indices:
            process_chunk(chunk)

    return wave


def check_nyquist(omega_a: float, fs: float):
    """
    Warn when an analysis frequency is at or above the Nyquist frequency.
    """
    import warnings

    frequency = abs(omega_a) / (2 * np.pi)
    if frequency >= fs / 2:
        warnings.warn(f'Analysis frequency {frequency:g} is at or above the Nyquist frequency ({fs / 2:g}). '
                      'Coefficients are aliased and unreliable', UserWarning, stacklevel=3)
