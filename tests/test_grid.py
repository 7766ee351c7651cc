"""
Tests for the analysis grid, cone of influence, rendering, significance and plotting.
"""
import numpy as np
import pandas as pd
import pytest

from cwtkit import grid_utils
from cwtkit import wt_utils


class TestFrequencyGrid:

    def test_size_formula(self):
        """Grid size is ceil(1 + log(f_end/f_start)/log(1 + 1/(8K)))."""
        for f_start, f_end, K in [(1, 10, 6), (50, 400, 2), (0.1, 0.2, 20)]:
            grid = grid_utils.build_frequency_grid(f_start, f_end, K)
            expected = int(np.ceil(1 + np.log(f_end / f_start) / np.log(1 + 1 / (8 * K))))
            assert len(grid) == expected

    def test_endpoints_and_spacing(self):
        """Geometric spacing with both endpoints included."""
        grid = grid_utils.build_frequency_grid(2, 50, 3)
        assert grid[0] == pytest.approx(2)
        assert grid[-1] == pytest.approx(50)
        ratios = grid[1:] / grid[:-1]
        np.testing.assert_allclose(ratios, ratios[0])
        assert ratios[0] <= 1 + 1 / 24

    def test_size_grows_with_scale(self):
        sizes = [len(grid_utils.build_frequency_grid(1, 100, K)) for K in (1, 2, 6, 20)]
        assert sizes == sorted(sizes)
        assert len(set(sizes)) == len(sizes)

    def test_size_grows_with_range(self):
        sizes = [len(grid_utils.build_frequency_grid(1, f_end, 6)) for f_end in (2, 10, 100)]
        assert sizes[0] < sizes[1] < sizes[2]

    @pytest.mark.parametrize("f_start, f_end, K", [(0, 10, 6), (10, 10, 6), (20, 10, 6), (1, 10, 0)])
    def test_invalid_range(self, f_start, f_end, K):
        with pytest.raises(ValueError):
            grid_utils.build_frequency_grid(f_start, f_end, K)


class TestWaveletGrid:

    def test_rows_equal_single_transforms(self, rng):
        """Row r equals the Fourier transform at 2*pi*frequencies[r]."""
        fs = 200
        x = rng.standard_normal(700)
        grid, freqs = grid_utils.wavelet_grid(x, 4, 5, 40, fs)
        assert grid.shape == (len(freqs), 700)
        for r in (0, len(freqs) // 2, len(freqs) - 1):
            np.testing.assert_allclose(grid[r], wt_utils.wavelet_transform_fourier(x, 2 * np.pi * freqs[r], 4, fs),
                                       atol=1e-10)

    def test_threaded_grid(self, rng):
        x = rng.standard_normal(512)
        grid, _ = grid_utils.wavelet_grid(x, 6, 1, 20, 100)
        threaded, _ = grid_utils.wavelet_grid(x, 6, 1, 20, 100, workers=2, chunk_size=5)
        np.testing.assert_allclose(threaded, grid, atol=1e-10)

    def test_peak_row(self):
        """A pure tone peaks on the row closest to its frequency."""
        fs = 1000
        t = np.arange(4000) / fs
        grid, freqs = grid_utils.wavelet_grid(np.cos(2 * np.pi * 50 * t), 6, 10, 200, fs)
        power = np.mean(np.abs(grid[:, 1000:3000]), axis=1)
        assert abs(freqs[np.argmax(power)] - 50) / 50 < 0.05

    def test_nyquist_warning(self):
        """A range reaching fs/2 is reported once, not once per row."""
        import warnings

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            grid, freqs = grid_utils.wavelet_grid(np.ones(128), 2, 0.1, 0.6, 1)
        nyquist = [w for w in caught if 'Nyquist' in str(w.message)]
        assert len(nyquist) == 1
        assert 'f_end' in str(nyquist[0].message)
        assert np.sum(freqs >= 0.5) > 1
        assert np.all(np.isfinite(grid))

    def test_wavelet_dict(self, rng):
        """Wavelet dictionary and scale parameter give the same grid."""
        from cwtkit import basis

        x = rng.standard_normal(500)
        grid, freqs = grid_utils.wavelet_grid(x, 6, 1, 20, 100)
        grid_dict, freqs_dict = grid_utils.wavelet_grid(x, basis.define_wavelet(6), 1, 20, 100)
        np.testing.assert_array_equal(freqs_dict, freqs)
        np.testing.assert_allclose(grid_dict, grid)


class TestCOI:

    def test_formula_and_times(self):
        """Analytic COI is K*sqrt(-ln p)/(pi*d) with d the edge distance."""
        fs, K, p = 10.0, 6, 0.02
        times, coi = grid_utils.compute_coi(0, 9.9, fs, K, p)
        assert len(times) == 100
        np.testing.assert_allclose(times, np.arange(100) / fs)
        d = np.minimum(np.arange(1, 101), np.arange(100, 0, -1)) / fs
        np.testing.assert_allclose(coi, K * np.sqrt(-np.log(p)) / (np.pi * d))

    @pytest.mark.parametrize("n", [99, 100])
    def test_symmetry(self, n):
        """Boundary is symmetric around the signal centre and lowest there."""
        _, coi = grid_utils.compute_coi(0, (n - 1) / 50, 50, 3)
        assert len(coi) == n
        np.testing.assert_allclose(coi, coi[::-1])
        assert np.argmin(coi) in (n // 2 - 1, n // 2)

    def test_period_unit(self):
        """Period COI is the reciprocal of the frequency COI."""
        _, coi_f = grid_utils.compute_coi(1, 5, 20, 4)
        _, coi_p = grid_utils.compute_coi(1, 5, 20, 4, unit='p')
        np.testing.assert_allclose(coi_p, 1 / coi_f)

    def test_clamped_to_grid(self):
        freqs = np.array([0.5, 1.0, 2.0])
        _, coi = grid_utils.compute_coi(0, 99, 1, 6, fper=freqs)
        assert coi.min() >= 0.5
        assert coi.max() <= 2.0

    def test_larger_scale_raises_boundary(self):
        _, coi_small = grid_utils.compute_coi(0, 10, 10, 2)
        _, coi_large = grid_utils.compute_coi(0, 10, 10, 8)
        assert np.all(coi_large > coi_small)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            grid_utils.compute_coi(5, 1, 10, 6)
        with pytest.raises(ValueError):
            grid_utils.compute_coi(0, 1, 10, 6, unit='x')
        with pytest.raises(ValueError):
            grid_utils.compute_coi(0, 1, 10, 6, percentout=2.0)

    def test_impulse_close_to_analytic(self):
        """Numeric COI follows the analytic boundary inside the grid."""
        fs, n, K = 100, 1024, 6
        freqs = grid_utils.build_frequency_grid(1, 10, K)
        numeric = grid_utils.compute_coi_impulse(n, fs, K, freqs)
        _, analytic = grid_utils.compute_coi(0, (n - 1) / fs, fs, K)

        idx = np.arange(n // 8, 3 * n // 8)
        inside = (analytic[idx] > freqs[1]) & (analytic[idx] < freqs[-2])
        assert np.count_nonzero(inside) > 50
        ratio = numeric[idx][inside] / analytic[idx][inside]
        assert np.all(ratio >= 0.98)
        assert np.all(ratio <= 1.05)

    def test_impulse_shape_and_unit(self):
        freqs = np.geomspace(2, 20, 15)
        coi_f = grid_utils.compute_coi_impulse(200, 100, 4, freqs)
        coi_p = grid_utils.compute_coi_impulse(200, 100, 4, freqs, unit='p')
        assert coi_f.shape == (200,)
        assert set(np.unique(coi_f)) <= set(freqs)
        np.testing.assert_allclose(coi_p, 1 / coi_f)
        # Edges are untrusted at every frequency
        assert coi_f[0] == freqs.max()


class TestRender:

    @pytest.fixture
    def grid(self, rng):
        x = rng.standard_normal(2000)
        return grid_utils.wavelet_grid(x, 6, 2, 20, 100)

    @pytest.mark.parametrize("mode, fct", [('magnitude', np.abs),
                                           ('magnitude_squared', lambda w: np.abs(w)**2),
                                           ('magnitude_sqrt', lambda w: np.sqrt(np.abs(w)))])
    def test_modes(self, grid, mode, fct):
        wave, freqs = grid
        surface, times, coi = grid_utils.render(wave, freqs, mode=mode)
        assert isinstance(surface, np.ma.MaskedArray)
        np.testing.assert_allclose(np.ma.getdata(surface), fct(wave))
        assert not np.any(np.ma.getmaskarray(surface))
        assert coi is None
        np.testing.assert_allclose(times, np.arange(2000))

    def test_invalid_mode(self, grid):
        with pytest.raises(ValueError):
            grid_utils.render(*grid, mode='phase')

    def test_coi_mask(self, grid):
        """Cells with frequency below the COI are masked."""
        wave, freqs = grid
        times, coi = grid_utils.compute_coi(0, 19.99, 100, 6, fper=freqs)
        surface, _, _ = grid_utils.render(wave, freqs, (times, coi), times=times, downsample=False)
        expected = freqs[:, None] < coi[None, :]
        np.testing.assert_array_equal(np.ma.getmaskarray(surface), expected)
        # Edges masked at the lowest frequency, centre kept at the highest
        assert surface.mask[0, 0]
        assert not surface.mask[-1, 1000]

    def test_downsampling(self, grid):
        """Time axis is resampled to floor(N / factor) points."""
        wave, freqs = grid
        factor = grid_utils.downsample_factor(6, 100, freqs.max())
        assert factor == pytest.approx(max(6 / 24 * 100 / 20, 1))
        _, coi = grid_utils.compute_coi(0, 19.99, 100, 6, fper=freqs)
        surface, times, coi_ds = grid_utils.render(wave, freqs, coi, K=6, fs=100)
        expected = int(np.floor(2000 / factor))
        assert surface.shape == (len(freqs), expected)
        assert len(times) == len(coi_ds) == expected
        assert times[0] == pytest.approx(0)
        assert times[-1] == pytest.approx(19.99)

    def test_no_downsampling_below_factor_one(self, grid):
        wave, freqs = grid
        assert grid_utils.downsample_factor(1, 100, 40) == 1
        surface, _, _ = grid_utils.render(wave, freqs, K=1, fs=100, downsample=True)
        assert surface.shape == wave.shape

    def test_shape_mismatch(self, grid):
        wave, freqs = grid
        with pytest.raises(ValueError):
            grid_utils.render(wave, freqs[:-1])
        with pytest.raises(ValueError):
            grid_utils.render(wave, freqs, coi=np.ones(10))


class TestSignificance:

    def test_white_noise_rate(self, rng):
        """Around 1 - prob of white noise cells exceed the background."""
        fs = 100
        x = rng.standard_normal(4096)
        wave, freqs = grid_utils.wavelet_grid(x, 6, 2, 20, fs)
        signif = grid_utils.compute_significance(x, wave, freqs, 6, fs, lag1=0.0, prob=0.95)
        assert signif.shape == wave.shape
        assert signif.dtype == bool
        fraction = np.mean(signif[:, 500:-500])
        assert 0.01 < fraction < 0.12

    def test_tone_is_significant(self, rng):
        fs = 100
        t = np.arange(2048) / fs
        x = 0.3 * rng.standard_normal(2048) + np.sin(2 * np.pi * 8 * t)
        wave, freqs = grid_utils.wavelet_grid(x, 6, 2, 20, fs)
        signif = grid_utils.compute_significance(x, wave, freqs, 6, fs)
        row = np.argmin(np.abs(freqs - 8))
        assert np.mean(signif[row, 300:-300]) > 0.9

    def test_estimation_failure(self):
        """Constant signal gives no lag-1 estimate: warning and None."""
        x = np.ones(256)
        wave, freqs = grid_utils.wavelet_grid(x, 6, 2, 20, 100)
        with pytest.warns(UserWarning, match='lag1'):
            assert grid_utils.compute_significance(x, wave, freqs, 6, 100) is None

    def test_resample_to_surface_times(self):
        """Significance follows the nearest original column on the new times."""
        times = np.arange(10.0)
        signif = np.zeros((2, 10), dtype=bool)
        signif[0, 2:5] = True
        signif[1, 9] = True
        new_times = np.array([0.0, 2.4, 4.6, 6.0, 9.0])
        resampled = grid_utils.resample_significance(signif, times, new_times)
        assert resampled.dtype == bool
        np.testing.assert_array_equal(resampled, [[False, True, False, False, False],
                                                  [False, False, False, False, True]])
        np.testing.assert_array_equal(grid_utils.resample_significance(signif, times, times), signif)
        with pytest.raises(ValueError):
            grid_utils.resample_significance(signif, times[:5], new_times)

    def test_ar1_coefficient(self, rng):
        """Estimator recovers the coefficient of an AR(1) process."""
        e = rng.standard_normal(20000)
        x = np.zeros_like(e)
        for i in range(1, len(e)):
            x[i] = 0.7 * x[i - 1] + e[i]
        assert grid_utils.ar1_coefficient(x) == pytest.approx(0.7, abs=0.03)

    def test_shape_mismatch(self, rng):
        x = rng.standard_normal(100)
        with pytest.raises(ValueError):
            grid_utils.compute_significance(x, np.zeros((3, 99)), [1, 2, 3], 6, 10)


class TestPlot:

    def test_returns_figure(self, rng):
        wave, freqs = grid_utils.wavelet_grid(rng.standard_normal(500), 6, 2, 20, 100)
        times, coi = grid_utils.compute_coi(0, 4.99, 100, 6, fper=freqs)
        surface, times, coi = grid_utils.render(wave, freqs, coi, times=times, K=6, fs=100)
        fig, ax = grid_utils.plot_scalogram(surface, freqs, times, coi, return_fig=True)
        assert ax.get_yscale() == 'log'
        assert ax.get_title() == 'Scalogram'
        assert len(ax.lines) == 1

    def test_datetime_axis(self, rng):
        wave, freqs = grid_utils.wavelet_grid(rng.standard_normal(200), 3, 0.05, 0.2, 1)
        dates = pd.date_range('2024-01-01', periods=200, freq='D')
        surface, _, _ = grid_utils.render(wave, freqs)
        signif = np.zeros(surface.shape, dtype=bool)
        signif[2, 50:60] = True
        fig, ax = grid_utils.plot_scalogram(surface, freqs, dates, signif=signif, return_fig=True)
        assert ax.get_xlabel() == 'Date'

    def test_shape_checks(self):
        with pytest.raises(ValueError):
            grid_utils.plot_scalogram(np.zeros((3, 4)), [1, 2], return_fig=True)
        with pytest.raises(ValueError):
            grid_utils.plot_scalogram(np.zeros((2, 4)), [1, 2], coi=np.ones(3), return_fig=True)
