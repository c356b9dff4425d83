import numpy as np
import pytest

import multitensor as mt
from multitensor.errors import InvalidArgument

KERNEL1 = [
    0.26242125034332275, -0.8787832260131836, 0.781475305557251,
    1.337337851524353, 0.6180247068405151, -0.2760246992111206,
    -0.11299663782119751, -0.46332040429115295, -0.1765323281288147,
    0.6807947158813477, -0.8326982855796814, 0.6732975244522095,
]
BIAS1 = [1.090713620185852, -0.8282332420349121, 0, 1.0889357328414917]
KERNEL2 = [
    -1.893059492111206, -1.0185645818710327, -0.6270437240600586,
    -2.1829540729522705, -0.4583775997161865, -0.5454602241516113,
    -0.3114445209503174, 0.8450229167938232,
]
BIAS2 = [0.9906240105628967, 0.6248329877853394, 0, 1.0224634408950806]


def _two_layer_cells(ctx, kernel1=None, bias1=None, kernel2=None, bias2=None):
    forget_bias = mt.scalar(1.0)
    kernel1 = kernel1 if kernel1 is not None else mt.tensor2d(KERNEL1, [3, 4])
    bias1 = bias1 if bias1 is not None else mt.tensor1d(BIAS1)
    kernel2 = kernel2 if kernel2 is not None else mt.tensor2d(KERNEL2, [2, 4])
    bias2 = bias2 if bias2 is not None else mt.tensor1d(BIAS2)

    def lstm1(data, c, h):
        return mt.basic_lstm_cell(forget_bias, kernel1, bias1, data, c, h, ctx=ctx)

    def lstm2(data, c, h):
        return mt.basic_lstm_cell(forget_bias, kernel2, bias2, data, c, h, ctx=ctx)

    return [lstm1, lstm2]


def test_multi_rnn_cell_with_two_basic_lstm_cells(ctx):
    cells = _two_layer_cells(ctx)
    c = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    h = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    onehot = mt.buffer([1, 2])
    onehot.set(1.0, 0, 0)

    output = mt.multi_rnn_cell(cells, onehot.to_tensor(), c, h)

    assert len(output) == 2
    (c0, h0), (c1, h1) = output
    np.testing.assert_allclose(c0.data_sync(), [-0.7440074682235718], atol=1e-4)
    np.testing.assert_allclose(h0.data_sync(), [-0.5802832245826721], atol=1e-4)
    np.testing.assert_allclose(c1.data_sync(), [0.7460772395133972], atol=1e-4)
    np.testing.assert_allclose(h1.data_sync(), [0.5745711922645569], atol=1e-4)
    for new_c, new_h in output:
        new_c.dispose()
        new_h.dispose()
    if ctx.backend_name == "accelerated":
        assert ctx.backend.memory_()["num_buffers"] == 0


def test_basic_lstm_cell_batch_of_identical_rows(ctx):
    kernel = mt.random_normal([3, 4], seed=1)
    bias = mt.random_normal([4], seed=2)
    data = mt.random_normal([1, 2], seed=3)
    c = mt.random_normal([1, 1], seed=4)
    h = mt.random_normal([1, 1], seed=5)
    batched_data = mt.concat2d([data, data], 0, ctx=ctx)
    batched_c = mt.concat2d([c, c], 0, ctx=ctx)
    batched_h = mt.concat2d([h, h], 0, ctx=ctx)

    new_c, new_h = mt.basic_lstm_cell(1.0, kernel, bias, batched_data, batched_c, batched_h, ctx=ctx)

    assert new_c.shape == (2, 1)
    assert new_h.shape == (2, 1)
    assert new_c.get(0, 0) == pytest.approx(new_c.get(1, 0), abs=1e-6)
    assert new_h.get(0, 0) == pytest.approx(new_h.get(1, 0), abs=1e-6)


def test_basic_lstm_cell_accepts_tensor_like(ctx):
    kernel = mt.random_normal([3, 4], seed=11)
    data = mt.concat2d([[[0, 0]], [[0, 0]]], 0, ctx=ctx)
    c = mt.concat2d([[[0]], [[0]]], 0, ctx=ctx)
    h = mt.concat2d([[[0]], [[0]]], 0, ctx=ctx)

    new_c, new_h = mt.basic_lstm_cell(1, kernel, [0, 0, 0, 0], data, c, h, ctx=ctx)

    # zero input and bias: every gate sits at sigmoid(0) / tanh(0)
    np.testing.assert_allclose(new_c.numpy(), [[0.0], [0.0]], atol=1e-6)
    np.testing.assert_allclose(new_h.numpy(), [[0.0], [0.0]], atol=1e-6)


def test_basic_lstm_cell_matches_numpy_reference(ctx):
    rng = np.random.default_rng(0)
    batch, inputs, hidden = 3, 4, 2
    kernel = rng.standard_normal((inputs + hidden, 4 * hidden)).astype(np.float32)
    bias = rng.standard_normal(4 * hidden).astype(np.float32)
    data = rng.standard_normal((batch, inputs)).astype(np.float32)
    c = rng.standard_normal((batch, hidden)).astype(np.float32)
    h = rng.standard_normal((batch, hidden)).astype(np.float32)

    new_c, new_h = mt.basic_lstm_cell(0.5, kernel, bias, data, c, h, ctx=ctx)

    def sigmoid(x):
        return 1.0 / (1.0 + np.exp(-x))

    res = np.concatenate([data, h], axis=1).astype(np.float64) @ kernel + bias
    i, j, f, o = np.split(res, 4, axis=1)
    expected_c = c * sigmoid(f + 0.5) + sigmoid(i) * np.tanh(j)
    expected_h = np.tanh(expected_c) * sigmoid(o)
    np.testing.assert_allclose(new_c.numpy(), expected_c, rtol=1e-4, atol=1e-5)
    np.testing.assert_allclose(new_h.numpy(), expected_h, rtol=1e-4, atol=1e-5)


@pytest.mark.parametrize("arg", ["forget_bias", "lstm_kernel", "lstm_bias", "data", "c", "h"])
def test_basic_lstm_cell_names_non_tensor_argument(arg):
    args = {
        "forget_bias": mt.scalar(1.0),
        "lstm_kernel": mt.random_normal([3, 4], seed=0),
        "lstm_bias": mt.random_normal([4], seed=1),
        "data": mt.zeros([2, 2]),
        "c": mt.zeros([2, 1]),
        "h": mt.zeros([2, 1]),
    }
    args[arg] = {}
    with pytest.raises(InvalidArgument, match=f"Argument '{arg}' passed to 'basic_lstm_cell' must be a Tensor"):
        mt.basic_lstm_cell(**args)


def test_basic_lstm_cell_rejects_wrong_rank_and_shape():
    kernel = mt.zeros([3, 4])
    bias = mt.zeros([4])
    with pytest.raises(InvalidArgument, match="'lstm_kernel'.*rank 2"):
        mt.basic_lstm_cell(1.0, mt.zeros([12]), bias, mt.zeros([1, 2]), mt.zeros([1, 1]), mt.zeros([1, 1]))
    with pytest.raises(InvalidArgument, match="'lstm_kernel'.*shape"):
        mt.basic_lstm_cell(1.0, mt.zeros([4, 4]), bias, mt.zeros([1, 2]), mt.zeros([1, 1]), mt.zeros([1, 1]))
    with pytest.raises(InvalidArgument, match="'h'.*shape"):
        mt.basic_lstm_cell(1.0, kernel, bias, mt.zeros([1, 2]), mt.zeros([1, 1]), mt.zeros([2, 1]))


def _zero_cells():
    return _two_layer_cells(
        None,
        kernel1=mt.zeros([3, 4]),
        bias1=mt.zeros([4]),
        kernel2=mt.zeros([2, 4]),
        bias2=mt.zeros([4]),
    )


def test_multi_rnn_cell_names_bad_data():
    c = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    h = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    with pytest.raises(InvalidArgument, match="Argument 'data' passed to 'multi_rnn_cell' must be a Tensor"):
        mt.multi_rnn_cell(_zero_cells(), {}, c, h)


def test_multi_rnn_cell_names_bad_cell_state():
    h = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    with pytest.raises(InvalidArgument, match=r"Argument 'c\[0\]' passed to 'multi_rnn_cell' must be a Tensor"):
        mt.multi_rnn_cell(_zero_cells(), mt.zeros([1, 2]), [{}], h)


def test_multi_rnn_cell_names_bad_hidden_state():
    c = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    with pytest.raises(InvalidArgument, match=r"Argument 'h\[0\]' passed to 'multi_rnn_cell' must be a Tensor"):
        mt.multi_rnn_cell(_zero_cells(), mt.zeros([1, 2]), c, [{}])


def test_multi_rnn_cell_names_wrong_rank_element():
    c = [mt.zeros([1, 1]), mt.zeros([1])]
    h = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    with pytest.raises(InvalidArgument, match=r"'c\[1\]'.*rank 2"):
        mt.multi_rnn_cell(_zero_cells(), mt.zeros([1, 2]), c, h)


def test_multi_rnn_cell_state_count_must_match_cells():
    c = [mt.zeros([1, 1])]
    h = [mt.zeros([1, 1]), mt.zeros([1, 1])]
    with pytest.raises(InvalidArgument, match="one state per cell"):
        mt.multi_rnn_cell(_zero_cells(), mt.zeros([1, 2]), c, h)


def test_basic_lstm_cell_releases_intermediates_when_a_kernel_fails(monkeypatch):
    with mt.ExecutionContext("accelerated") as ctx:
        backend = ctx.backend
        unary = backend.unary_
        calls = []

        def failing_unary(op, x):
            calls.append(op)
            if len(calls) == 5:
                raise RuntimeError("kernel failed")
            return unary(op, x)

        monkeypatch.setattr(backend, "unary_", failing_unary)
        with pytest.raises(RuntimeError, match="kernel failed"):
            mt.basic_lstm_cell(
                mt.scalar(1.0), mt.tensor2d(KERNEL1, [3, 4]), mt.tensor1d(BIAS1),
                [[1.0, 2.0]], [[0.0]], [[0.0]], ctx=ctx,
            )
        assert calls == ["sigmoid", "sigmoid", "tanh", "sigmoid", "tanh"]
        assert mt.memory(ctx)["num_buffers"] == 0
