"""
Train a classifier on the heart failure clinical records dataset
(https://www.kaggle.com/andrewmvd/heart-failure-clinical-data).

>>> python project/run_heart_failure.py datasets/heart_failure_clinical_records_dataset.csv
"""
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parent.parent))

import numpy as np

import deepthought
from deepthought.datasets import BatchSize, load_csv

# The last column, DEATH_EVENT, is the label.
LABEL_COLUMN = 12


def build_network(rng):
    return (
        deepthought.NeuralNetwork()
        .add_layer(deepthought.Layer(12, 20, rng))
        .add_layer(deepthought.Layer(20, 10, rng))
        .add_layer(deepthought.Layer(10, 5, rng))
        .add_layer(deepthought.Layer(5, 1, rng).activation(deepthought.Sigmoid()))
        .build()
    )


if __name__ == "__main__":
    PATH = sys.argv[1] if len(sys.argv) > 1 else "datasets/heart_failure_clinical_records_dataset.csv"
    RATE = 0.01
    MOMENTUM = 0.1
    EPOCHS = 100

    data = load_csv(PATH, [LABEL_COLUMN], 0.8, BatchSize.number(2))
    net = build_network(np.random.default_rng())
    trainer = deepthought.Trainer(net, deepthought.SGD(RATE, MOMENTUM))
    trainer.train(data, EPOCHS, log_every=1)

    mean_loss, predictions = trainer.evaluate(data)
    for (sample, label), out in zip(data.iter_test(), predictions.T):
        print(out, "should be", data.denormalize_label(label.to_owned()).tolist())
    print("Mean loss over %d test batches: %.4f" % (data.num_batches(train=False), mean_loss))
