"""
Be sure you have deepthought installed in you Virtual Env.
>>> pip install -Ue .
"""
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parent.parent))

import numpy as np

import deepthought
from deepthought.datasets import BatchSize, xor_table


def build_network(rng):
    """A 2-3-3-1 network with sigmoid activations on every layer.

    Args:
        rng (np.random.Generator): source of the initial weights.

    Returns:
        NeuralNetwork: the network, with every parameter tracked.
    """
    sigmoid = deepthought.Sigmoid()
    return (
        deepthought.NeuralNetwork()
        .add_layer(deepthought.Layer(2, 3, rng).activation(sigmoid))
        .add_layer(deepthought.Layer(3, 3, rng).activation(sigmoid))
        .add_layer(deepthought.Layer(3, 1, rng).activation(sigmoid))
        .build()
    )


def log_fn(epoch, total_loss, correct, losses):
    print("training epoch", epoch, "mean loss", total_loss / 4, "correct", correct)


def train_xor(rate, epochs, seed=None, log=log_fn, log_every=100):
    data = xor_table(BatchSize.one())
    net = build_network(np.random.default_rng(seed))
    trainer = deepthought.Trainer(net, deepthought.SGD(rate, 0.0))
    trainer.train(data, epochs, log, log_every)
    return trainer, data


if __name__ == "__main__":
    RATE = 0.3
    EPOCHS = 11000
    trainer, data = train_xor(RATE, EPOCHS)

    mean_loss, predictions = trainer.evaluate(data, train=True)
    for (sample, label), out in zip(data.iter_train(), predictions.T):
        print(sample.tolist(), "->", out, "==", label.tolist())
    print("Mean loss over 4 test samples: %.2f" % mean_loss)
