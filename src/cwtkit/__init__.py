"""
Discrete Fourier Transform and Morlet continuous wavelet transform toolkit.
"""
from cwtkit.basis import (dft_basis, dft_basis_matrix, inner_product, morlet_time,
                          morlet_fourier, morlet_support, define_wavelet, as_wavelet)
from cwtkit.wt_utils import (dft_direct, dft_matrix, wavelet_transform_direct,
                             wavelet_transform_fourier, wavelet_transform_rows)
from cwtkit.grid_utils import (build_frequency_grid, wavelet_grid, compute_coi,
                               compute_coi_impulse, downsample_factor, render,
                               compute_significance, plot_scalogram)
from cwtkit.cwtransform import Wavelet_Transform

__version__ = "1.0.0"
