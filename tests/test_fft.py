import numpy as np
import pytest

import multitensor as mt
from multitensor.errors import InvalidArgument, UnsupportedRank


def assert_close(t, expected, tol=1e-4):
    np.testing.assert_allclose(t.data_sync(), np.asarray(expected, dtype=np.float32), rtol=tol, atol=tol)


@pytest.mark.parametrize(
    "re,im,expected",
    [
        ([1, 2], [1, 1], [3, 2, -1, 0]),
        ([1, 2, 3], [0, 0, 0], [6, 0, -1.5, 0.866025, -1.5, -0.866025]),
        ([1, 2, 3], [1, 2, 3], [6, 6, -2.3660252, -0.63397473, -0.6339747, -2.3660254]),
        ([-1, -2, -3], [-1, -2, -3], [-5.9999995, -6, 2.3660252, 0.63397473, 0.6339747, 2.3660254]),
        ([1, 2, 3, 4], [0, 0, 0, 0], [10, 0, -2, 2, -2, 0, -2, -2]),
        ([1, 2, 3, 4], [1, 2, 3, 4], [10, 10, -4, 0, -2, -2, 0, -4]),
    ],
)
def test_fft_1d(ctx, re, im, expected):
    x = mt.complex(mt.tensor1d(re), mt.tensor1d(im))
    y = mt.fft(x, ctx=ctx)
    assert y.shape == x.shape
    assert y.dtype == "complex64"
    assert_close(y, expected)
    y.dispose()


@pytest.mark.parametrize(
    "re,im,expected",
    [
        ([1, 2], [1, 1], [1.5, 1, -0.5, 0]),
        ([1, 2, 3], [0, 0, 0], [2, 0, -0.5, -0.28867507, -0.5, 0.28867519]),
        ([1, 2, 3], [1, 2, 3], [2, 2, -0.21132492, -0.78867507, -0.7886752, -0.2113249]),
        ([1, 2, 3, 4], [0, 0, 0, 0], [2.5, 0, -0.5, -0.5, -0.5, 0, -0.5, 0.5]),
        ([1, 2, 3, 4], [1, 2, 3, 4], [2.5, 2.5, 0, -1, -0.5, -0.5, -1, 0]),
    ],
)
def test_ifft_1d(ctx, re, im, expected):
    x = mt.complex(mt.tensor1d(re), mt.tensor1d(im))
    y = mt.ifft(x, ctx=ctx)
    assert_close(y, expected)
    y.dispose()


def test_fft_and_ifft_from_tensor_methods():
    x = mt.complex(mt.tensor1d([1, 2]), mt.tensor1d([1, 1]))
    assert_close(x.fft(), [3, 2, -1, 0])
    assert_close(x.ifft(), [1.5, 1, -0.5, 0])


def test_fft_2d_batches_rows(ctx):
    x = mt.complex(mt.tensor2d([1, 2, 3, 4], [2, 2]), mt.tensor2d([5, 6, 7, 8], [2, 2]))
    y = mt.fft(x, ctx=ctx)
    assert y.shape == (2, 2)
    assert_close(y, [3, 11, -1, -1, 7, 15, -1, -1])
    z = mt.ifft(x, ctx=ctx)
    assert_close(z, [1.5, 5.5, -0.5, -0.5, 3.5, 7.5, -0.5, -0.5])
    y.dispose()
    z.dispose()


def _rank3_input():
    return mt.complex(
        mt.tensor3d([1, 2, 3, 4, -1, -2, -3, -4], [2, 2, 2]),
        mt.tensor3d([5, 6, 7, 8, -5, -6, -7, -8], [2, 2, 2]),
    )


def test_fft_3d_on_cpu():
    with mt.ExecutionContext("cpu") as ctx:
        y = mt.fft(_rank3_input(), ctx=ctx)
        assert y.shape == (2, 2, 2)
        assert_close(y, [3, 11, -1, -1, 7, 15, -1, -1, -3, -11, 1, 1, -7, -15, 1, 1])
        z = mt.ifft(_rank3_input(), ctx=ctx)
        assert_close(z, [1.5, 5.5, -0.5, -0.5, 3.5, 7.5, -0.5, -0.5,
                         -1.5, -5.5, 0.5, 0.5, -3.5, -7.5, 0.5, 0.5])


def test_fft_3d_on_accelerated_raises_unsupported_rank():
    with mt.ExecutionContext("accelerated") as ctx:
        with pytest.raises(UnsupportedRank):
            mt.fft(_rank3_input(), ctx=ctx)
        with pytest.raises(UnsupportedRank):
            mt.ifft(_rank3_input(), ctx=ctx)
        with pytest.raises(UnsupportedRank):
            mt.rfft(mt.ones([2, 2, 2]), ctx=ctx)
        assert ctx.backend.memory_()["num_buffers"] == 0


@pytest.mark.parametrize("n", [1, 5, 8, 12, 16])
def test_fft_matches_numpy(ctx, n):
    rng = np.random.default_rng(n)
    re = rng.standard_normal((3, n)).astype(np.float32)
    im = rng.standard_normal((3, n)).astype(np.float32)
    y = mt.fft(mt.complex(re, im), ctx=ctx)
    expected = np.fft.fft(re.astype(np.float64) + 1j * im, axis=-1)
    np.testing.assert_allclose(y.numpy(), expected, rtol=1e-4, atol=1e-4)
    y.dispose()


def test_ifft_inverts_fft(ctx):
    rng = np.random.default_rng(7)
    re = rng.standard_normal((4, 6)).astype(np.float32)
    im = rng.standard_normal((4, 6)).astype(np.float32)
    x = mt.complex(re, im)
    spectrum = mt.fft(x, ctx=ctx)
    back = mt.ifft(spectrum, ctx=ctx)
    np.testing.assert_allclose(back.real.numpy(), re, rtol=1e-4, atol=1e-4)
    np.testing.assert_allclose(back.imag.numpy(), im, rtol=1e-4, atol=1e-4)
    spectrum.dispose()
    back.dispose()


@pytest.mark.parametrize(
    "values,shape,expected",
    [
        ([1, 2, 3], None, [6, 1.1920929e-07, -1.4999999, 8.6602521e-01]),
        ([-3, -2, -1, 1, 2, 3], None,
         [0, 0, -4, 6.9282026, -3, 1.7320497, -4, 0]),
        ([1, 2, 3, 4], [2, 2], [3, 0, -1, 0, 7, 0, -1, 0]),
        ([1, 2, 3, 4, 5, 6], [2, 3], [6, 0, -1.5, 0.8660252, 15, 0, -1.5, 0.8660254]),
    ],
)
def test_rfft(ctx, values, shape, expected):
    x = mt.tensor(values, shape)
    y = mt.rfft(x, ctx=ctx)
    n = x.shape[-1]
    assert y.shape == x.shape[:-1] + (n // 2 + 1,)
    assert_close(y, expected)
    y.dispose()
    if ctx.backend_name == "accelerated":
        assert ctx.backend.memory_()["num_buffers"] == 0


def test_rfft_3d_on_cpu():
    with mt.ExecutionContext("cpu") as ctx:
        y = mt.tensor3d([1, 2, 3, 4, 5, 6, 7, 8], [2, 2, 2]).rfft(ctx=ctx)
        assert_close(y, [3, 0, -1, 0, 7, 0, -1, 0, 11, 0, -1, 0, 15, 0, -1, 0])


def test_fft_rejects_real_and_scalar_input(ctx):
    with pytest.raises(InvalidArgument, match="complex64"):
        mt.fft(mt.tensor1d([1, 2]), ctx=ctx)
    with pytest.raises(InvalidArgument, match="rank >= 1"):
        mt.ifft(mt.complex(mt.scalar(1), mt.scalar(0)), ctx=ctx)
    with pytest.raises(InvalidArgument, match="rank >= 1"):
        mt.rfft(mt.scalar(1), ctx=ctx)


def test_complex_shape_mismatch():
    with pytest.raises(InvalidArgument, match="must match in call to complex"):
        mt.complex(mt.tensor1d([1, 2]), mt.tensor1d([1, 2, 3]))


def test_real_and_imag_parts():
    x = mt.complex([[1, 2]], [[3, 4]])
    np.testing.assert_array_equal(mt.real(x).numpy(), [[1, 2]])
    np.testing.assert_array_equal(mt.imag(x).numpy(), [[3, 4]])
    assert x.get(0, 1) == complex(2, 4)
    np.testing.assert_array_equal(x.data_sync(), [1, 3, 2, 4])
