#!/usr/bin/env python3
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Command line entry point.

    tinynet train   --csv data.csv --label y --hidden 8 --epochs 20 --out model.json
    tinynet predict --model model.json --input 0.5,1
    tinynet respond --text "the cat sat" --vocabulary en --labels A,B
"""

import argparse
import json
import logging
import pathlib
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .activations import Activation
from .data import MinMaxScaler, classes_of, one_hot, read_csv, split_features
from .errors import NetworkRecordError, TinynetError
from .network import Network
from .pipeline import Pipeline
from .sequence import SequenceModel

logger = logging.getLogger(__name__)


@dataclass
class TrainConfig:
    csv: str = "data.csv"
    label: str = "label"
    sep: str = ";"
    hidden: List[int] = field(default_factory=list)
    activation: str = Activation.SIGMOID.value
    learning_rate: float = 0.01
    epochs: int = 10
    out: str = "model.json"
    seed: Optional[int] = None


def _int_list(text: str) -> List[int]:
    return [int(v) for v in text.split(",") if v.strip()]


def _float_list(text: str) -> List[float]:
    return [float(v) for v in text.split(",") if v.strip()]


def train(cfg: TrainConfig) -> Network:
    frame = read_csv(cfg.csv, sep=cfg.sep)
    X, labels = split_features(frame, cfg.label)
    classes = classes_of(labels)
    Y = one_hot(labels, classes)

    scaler = MinMaxScaler()
    net = Network(
        [X.shape[1], *cfg.hidden, len(classes)],
        output_labels=classes,
        activation=cfg.activation,
        learning_rate=cfg.learning_rate,
        seed=cfg.seed,
    )
    pipe = Pipeline([scaler, net])
    for ep in range(cfg.epochs):
        pipe.fit(X, Y)
        acc = net.evaluate(scaler.transform(X), labels)
        logger.info(f"epoch {ep:4d}  acc {acc:.3f}")

    record = net.to_record()
    record["scaler"] = scaler.to_record()
    out = pathlib.Path(cfg.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(record, f)
    logger.info(f"Saved network {net.layer_sizes} to {out}")
    return net


def predict(model_path: str, values: List[float]) -> str:
    path = pathlib.Path(model_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            record = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise NetworkRecordError(f"Cannot read network record {path}: {e}") from e
    net = Network.from_record(record)
    x = np.asarray(values, dtype=float)
    if "scaler" in record:
        x = MinMaxScaler.from_record(record["scaler"]).transform(x)
    return net.predict(x)


def respond(args) -> np.ndarray:
    if args.model:
        model = SequenceModel.load(args.model, vocabulary_dir=args.vocabulary_dir)
    else:
        model = SequenceModel(
            layers=args.layers,
            depth=args.depth,
            output_labels=args.labels.split(",") if args.labels else None,
            vocabulary_dir=args.vocabulary_dir,
            seed=args.seed,
        )
    return model.respond(args.text, args.vocabulary, extend=not args.frozen)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tinynet")
    ap.add_argument("--log_level", type=str, default="INFO")
    sub = ap.add_subparsers(dest="command", required=True)

    tr = sub.add_parser("train", help="fit a network on a CSV file")
    tr.add_argument("--csv", type=str, required=True)
    tr.add_argument("--label", type=str, required=True)
    tr.add_argument("--sep", type=str, default=";")
    tr.add_argument("--hidden", type=_int_list, default=[])
    tr.add_argument(
        "--activation", type=str, default="SIGMOID", choices=[a.value for a in Activation]
    )
    tr.add_argument("--learning_rate", type=float, default=0.01)
    tr.add_argument("--epochs", type=int, default=10)
    tr.add_argument("--out", type=str, default="model.json")
    tr.add_argument("--seed", type=int, default=None)

    pr = sub.add_parser("predict", help="label one input with a saved network")
    pr.add_argument("--model", type=str, required=True)
    pr.add_argument("--input", type=_float_list, required=True)

    rs = sub.add_parser("respond", help="classify text with a sequence model")
    rs.add_argument("--text", type=str, required=True)
    rs.add_argument("--vocabulary", type=str, default="en")
    rs.add_argument("--vocabulary_dir", type=str, default="vocabulary")
    rs.add_argument("--model", type=str, default=None)
    rs.add_argument("--labels", type=str, default=None)
    rs.add_argument("--layers", type=int, default=1)
    rs.add_argument("--depth", type=int, default=4)
    rs.add_argument("--seed", type=int, default=None)
    rs.add_argument("--frozen", action="store_true", help="do not grow the vocabulary")
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "train":
            cfg = TrainConfig(
                csv=args.csv,
                label=args.label,
                sep=args.sep,
                hidden=args.hidden,
                activation=args.activation,
                learning_rate=args.learning_rate,
                epochs=args.epochs,
                out=args.out,
                seed=args.seed,
            )
            train(cfg)
        elif args.command == "predict":
            print(predict(args.model, args.input))
        elif args.command == "respond":
            probs = respond(args)
            print(json.dumps(probs.tolist()))
    except TinynetError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
