from pathlib import Path
from typing import List

import numpy as np
import pytest

from deepthought import (
    SGD,
    Array1,
    Array2,
    BatchSize,
    BorrowedArray,
    Dataset,
    Dual,
    Layer,
    LeakyReLU,
    Linear,
    Loss,
    NeuralNetwork,
    NoData,
    ReLU,
    ShapeMismatch,
    Sigmoid,
    Softmax,
    Tanh,
    Trainer,
    count_correct,
    load_csv,
    xor_table,
)
from deepthought.datasets import datasets as graph_datasets
from deepthought.datasets import make_pts

from .strategies import assert_close_dual


def dual_array(values: List[float], width: int = 0) -> Array1:
    if width:
        elems = [Dual.variable(v, i, width) for i, v in enumerate(values)]
    else:
        elems = [Dual.constant(v) for v in values]
    return Array1.from_numpy(np.array(elems, dtype=object))


# Activations


def test_sigmoid_activation() -> None:
    out = Sigmoid().compute(dual_array([0.0], 1))
    assert out[0].val == pytest.approx(0.5)
    assert out[0].e[0] == pytest.approx(0.25)

    plain = Sigmoid().compute(Array1.from_list([0.0, 100.0, -100.0]))
    assert plain.tolist() == pytest.approx([0.5, 1.0, 0.0])


def test_relu_activations() -> None:
    x = dual_array([-2.0, 3.0], 2)
    out = ReLU().compute(x)
    assert [d.val for d in out] == [0.0, 3.0]
    assert out[0].e.tolist() == [0.0, 0.0]
    assert out[1].e.tolist() == [0.0, 1.0]

    leaky = LeakyReLU(0.1).compute(x)
    assert leaky[0].val == pytest.approx(-0.2)
    assert leaky[0].e.tolist() == pytest.approx([0.1, 0.0])
    assert leaky[1].val == 3.0


def test_linear_is_identity_copy() -> None:
    x = dual_array([1.0, 2.0], 2)
    out = Linear().compute(x)
    assert out == x
    assert out[0] is not x[0]


def test_tanh_activation() -> None:
    out = Tanh().compute(dual_array([0.5], 1))
    assert out[0].val == pytest.approx(np.tanh(0.5))
    assert out[0].e[0] == pytest.approx(1 - np.tanh(0.5) ** 2)


def test_softmax() -> None:
    x = dual_array([1.0, 2.0, 3.0], 3)
    out = Softmax().compute(x)
    total = out.sum()
    assert total.val == pytest.approx(1.0)
    np.testing.assert_allclose(total.e, [0.0, 0.0, 0.0], atol=1e-12)

    expected = np.exp([1.0, 2.0, 3.0]) / np.exp([1.0, 2.0, 3.0]).sum()
    assert [float(d) for d in out] == pytest.approx(expected.tolist())

    # d softmax_0 / d x_0 = s_0 (1 - s_0)
    assert out[0].e[0] == pytest.approx(expected[0] * (1 - expected[0]))

    large = Softmax().compute(Array1.from_list([1000.0, 1000.0]))
    assert large.tolist() == pytest.approx([0.5, 0.5])


# Loss


def test_mse() -> None:
    out = Array2.from_numpy(
        np.array([[Dual.variable(0.5, 0, 2), Dual.variable(2.0, 1, 2)]], dtype=object)
    )
    target = Array2.from_list([[1.0, 1.0]])
    loss = Loss.MSE.compute(out, target)
    assert loss.shape == (1, 2)
    assert loss[0, 0].val == pytest.approx(0.25)
    assert loss[0, 1].val == pytest.approx(1.0)

    mean = loss.mean()
    assert mean.val == pytest.approx(0.625)
    # d/dx (x - 1)^2 / 2 = (x - 1)
    np.testing.assert_allclose(mean.e, [-0.5, 1.0])


# Layers and networks


def test_layer_shapes() -> None:
    layer = Layer(2, 3, np.random.default_rng(0))
    assert layer.W.shape == (3, 2)
    assert layer.B.shape == (3, 1)
    assert layer.num_parameters == 9
    assert all(isinstance(w, Dual) and w.width == 0 for w in layer.W)
    assert all(b.val == 0.0 for b in layer.B)

    out = layer.forward(Array2.zeros((2, 4)))
    assert out.shape == (3, 4)


def test_layer_forward() -> None:
    layer = Layer.from_parameters(
        Array2.from_list([[1.0, 2.0]]), Array2.from_list([[0.5]])
    )
    out = layer.forward(Array2.from_list([[1.0, 2.0], [1.0, -2.0]]))
    assert [float(d) for d in out] == [3.5, -1.5]

    out = layer.activation(ReLU()).forward(Array2.from_list([[1.0, 2.0], [1.0, -2.0]]))
    assert [float(d) for d in out] == [3.5, 0.0]

    with pytest.raises(ShapeMismatch):
        layer.forward(Array2.zeros((3, 1)))


def test_from_parameters_checks_bias_shape() -> None:
    with pytest.raises(ShapeMismatch):
        Layer.from_parameters(Array2.zeros((3, 2)), Array2.zeros((3, 2)))
    with pytest.raises(ShapeMismatch):
        Layer.from_parameters(Array2.zeros((3, 2)), Array2.zeros((2, 1)))


def test_add_layer_checks_sizes() -> None:
    with pytest.raises(ShapeMismatch):
        NeuralNetwork().add_layer(Layer(2, 3)).add_layer(Layer(4, 1))


def xor_network(seed: int) -> NeuralNetwork:
    rng = np.random.default_rng(seed)
    return (
        NeuralNetwork()
        .add_layer(Layer(2, 3, rng).activation(Sigmoid()))
        .add_layer(Layer(3, 3, rng).activation(Sigmoid()))
        .add_layer(Layer(3, 1, rng).activation(Sigmoid()))
    )


def test_track_parameters_slots() -> None:
    net = xor_network(0)
    assert net.num_parameters == 25
    assert not net.is_tracked()
    weights = [float(w) for w in net.layers[1].W]

    net.build()
    assert net.is_tracked()
    first, second, third = net.layers
    assert first.W[0, 0].e[0] == 1.0
    assert first.W[0, 1].e[1] == 1.0
    assert first.W[2, 1].e[5] == 1.0
    assert first.B[0, 0].e[6] == 1.0
    assert second.W[0, 0].e[9] == 1.0
    assert third.B[0, 0].e[24] == 1.0
    assert [float(w) for w in second.W] == weights
    for p in net.parameters():
        for x in p:
            assert x.e.sum() == 1.0


def test_gradient_of_linear_layer() -> None:
    net = NeuralNetwork().add_layer(
        Layer.from_parameters(Array2.from_list([[1.0, -1.0]]), Array2.from_list([[0.5]]))
    )
    net.track_parameters()
    x = Array2.from_list([[1.0], [2.0]])
    y = Array2.from_list([[0.0]])
    loss = Loss.MSE.compute(net.forward(x), y).mean()
    # out = w0 + 2 w1 + b = -0.5, loss = out^2
    assert loss.val == pytest.approx(0.25)
    np.testing.assert_allclose(loss.e, [-1.0, -2.0, -1.0])


def test_forward_before_tracking() -> None:
    net = xor_network(1)
    out = net.forward(Array2.from_list([[0.0], [1.0]]))
    assert out.shape == (1, 1)
    assert out[0, 0].width == 0
    assert net.predict(Array2.from_list([[0.0], [1.0]])).shape == (1, 1)


# Optimizer


def test_sgd_rejects_negative_settings() -> None:
    with pytest.raises(ValueError):
        SGD(lr=-0.1)
    with pytest.raises(ValueError):
        SGD().momentum(-1.0)
    with pytest.raises(ValueError):
        SGD().learning_rate(-1.0)
    sgd = SGD().learning_rate(0.3).momentum(0.9)
    assert (sgd.lr, sgd.mu) == (0.3, 0.9)


def test_sgd_step() -> None:
    net = NeuralNetwork().add_layer(
        Layer.from_parameters(Array2.from_list([[1.0, -1.0]]), Array2.from_list([[0.5]]))
    )
    net.track_parameters()
    sgd = SGD(lr=0.1, momentum=0.5)

    loss = Dual(0.0, [1.0, 2.0, -1.0])
    sgd.step(net, loss)
    np.testing.assert_allclose(sgd.velocity, [0.1, 0.2, -0.1])
    layer = net.layers[0]
    assert [float(w) for w in layer.W] == pytest.approx([0.9, -1.2])
    assert float(layer.B[0, 0]) == pytest.approx(0.6)
    assert net.is_tracked()

    sgd.step(net, loss)
    np.testing.assert_allclose(sgd.velocity, [0.15, 0.3, -0.15])
    assert [float(w) for w in layer.W] == pytest.approx([0.75, -1.5])


def test_sgd_needs_tracked_network() -> None:
    net = xor_network(0)
    with pytest.raises(ValueError):
        SGD().step(net, Dual.constant(1.0))


# Datasets


def test_batch_size() -> None:
    assert BatchSize.all().resolve(7) == 7
    assert BatchSize.one().resolve(7) == 1
    assert BatchSize.number(3).resolve(7) == 3
    with pytest.raises(ValueError):
        BatchSize.number(0)


def test_dataset_normalizes() -> None:
    records = [[1.0, 10.0], [3.0, 30.0]]
    labels = [[2.0], [6.0]]
    data = Dataset(records, labels, 1.0, BatchSize.all())
    assert data.length() == 2
    assert data.records.tolist() == [[0.5, 0.5], [1.5, 1.5]]
    assert data.labels.tolist() == [[0.5], [1.5]]
    assert data.denormalize_record([0.5, 0.5]).tolist() == [1.0, 10.0]
    assert data.denormalize_label(Array1.from_list([1.5])).tolist() == [6.0]


def test_raw_dataset() -> None:
    data = Dataset.raw([[1.0, 10.0]], [[2.0]])
    assert data.records.tolist() == [[1.0, 10.0]]
    assert data.denormalize_record([3.0, 4.0]).tolist() == [3.0, 4.0]


def test_dataset_without_data() -> None:
    with pytest.raises(NoData):
        Dataset(np.zeros((0, 3)), np.zeros((0, 1)))
    with pytest.raises(ShapeMismatch):
        Dataset([[1.0], [2.0]], [[1.0]])


def test_batches_are_transposed_views() -> None:
    records = np.arange(10.0).reshape(5, 2)
    labels = np.arange(5.0).reshape(5, 1)
    data = Dataset.raw(records, labels, 1.0, BatchSize.number(2))

    batches = list(data.iter_train())
    # the fifth row does not fill a batch
    assert len(batches) == 2
    assert data.num_batches() == 2
    samples, labels_ = batches[1]
    assert isinstance(samples, BorrowedArray)
    assert samples.shape == (2, 2)
    assert labels_.shape == (1, 2)
    assert samples.tolist() == [[4.0, 6.0], [5.0, 7.0]]
    assert labels_.tolist() == [[2.0, 3.0]]


def test_train_test_split() -> None:
    records = np.arange(20.0).reshape(10, 2)
    labels = np.ones((10, 1))
    data = Dataset.raw(records, labels, 0.8, BatchSize.all())
    (train, _), = data.iter_train()
    (test, _), = data.iter_test()
    assert train.shape == (2, 8)
    assert test.shape == (2, 2)
    assert test.tolist() == [[16.0, 18.0], [17.0, 19.0]]

    one = Dataset.raw(records, labels, 0.8, BatchSize.one())
    assert len(list(one.iter_train())) == 8
    assert len(list(one.iter_test())) == 2


def test_load_csv(tmp_path: Path) -> None:
    path = tmp_path / "records.csv"
    path.write_text("a,b,label\n1,2,0\n3,4,1\n5,6,1\n")
    data = load_csv(path, [2], 1.0, BatchSize.all())
    assert data.length() == 3
    assert data.record_means.tolist() == [[3.0, 4.0]]
    (samples, labels), = data.iter_train()
    assert samples.shape == (2, 3)
    assert labels.shape == (1, 3)

    empty = tmp_path / "empty.csv"
    empty.write_text("a,b,label\n")
    with pytest.raises(NoData):
        load_csv(empty, [2])


def test_xor_table() -> None:
    data = xor_table()
    assert data.length() == 4
    pairs = [(s.tolist(), l.tolist()) for s, l in data.iter_train()]
    assert pairs[1] == ([[0.0], [1.0]], [[1.0]])
    assert pairs[3] == ([[1.0], [1.0]], [[0.0]])


@pytest.mark.parametrize("name", sorted(graph_datasets))
def test_graph_datasets(name: str) -> None:
    graph = graph_datasets[name](20)
    assert len(graph.X) == graph.N == len(graph.y)
    data = graph.to_dataset()
    assert data.length() == 20
    assert data.records.shape == (20, 2)


@pytest.mark.parametrize("name", sorted(graph_datasets))
def test_graph_datasets_are_seeded(name: str) -> None:
    first = graph_datasets[name](30, np.random.default_rng(7))
    second = graph_datasets[name](30, np.random.default_rng(7))
    assert first.X == second.X
    assert first.y == second.y
    assert all(0.0 <= v < 1.0 for pt in make_pts(10) for v in pt)


def test_spiral_arms() -> None:
    graph = graph_datasets["Spiral"](20)
    t = 10.0 * 5 / 10
    assert graph.X[0] == pytest.approx((t * np.cos(t) / 20 + 0.5, t * np.sin(t) / 20 + 0.5))
    # second arm at -t, coordinates swapped
    assert graph.X[10] == pytest.approx((t * np.sin(t) / 20 + 0.5, -t * np.cos(t) / 20 + 0.5))
    assert graph.y == [0] * 10 + [1] * 10


# Training


def test_trainer_reports_progress() -> None:
    logged = []
    trainer = Trainer(xor_network(0), SGD(0.3))
    losses = trainer.train(
        xor_table(), 4, lambda *args: logged.append(args), log_every=2
    )
    assert len(losses) == 4
    assert [entry[0] for entry in logged] == [2, 4]
    assert trainer.net.is_tracked()
    mean_loss, predictions = trainer.evaluate(xor_table(), train=True)
    assert predictions.shape == (1, 4)
    assert 0.0 <= mean_loss <= 1.0
    assert trainer.run_one([1.0, 0.0]).shape == (1,)


def test_count_correct_rounds_half_away_from_zero() -> None:
    out = Array2.from_list([[0.5, 0.49, 2.5, -0.5]])
    labels = Array2.from_list([[1.0, 0.0, 3.0, -1.0]])
    assert count_correct(out, labels) == 4


def test_evaluate_rounds_half_away_from_zero() -> None:
    net = NeuralNetwork().add_layer(
        Layer.from_parameters(Array2.from_list([[1.0, 0.0]]), Array2.from_list([[0.0]]))
    )
    data = Dataset.raw([[0.5, 0.0], [2.5, 0.0]], [[1.0], [3.0]], 1.0)
    mean_loss, predictions = Trainer(net).evaluate(data, train=True)
    assert predictions.tolist() == [[1.0, 3.0]]
    assert mean_loss == pytest.approx(0.25)


@pytest.mark.slow
def test_xor_training_closure() -> None:
    data = xor_table(BatchSize.one())
    for seed in range(3):
        trainer = Trainer(xor_network(seed), SGD(0.3))
        trainer.train(data, 11000, lambda *args: None, log_every=1000)
        mean_loss, predictions = trainer.evaluate(data, train=True)
        if mean_loss < 0.05:
            break
    assert mean_loss < 0.05
    assert predictions[0].tolist() == [0.0, 1.0, 1.0, 0.0]


def test_dual_array_helper() -> None:
    x = dual_array([1.0, 2.0], 2)
    assert_close_dual(x[1], Dual.variable(2.0, 1, 2))
