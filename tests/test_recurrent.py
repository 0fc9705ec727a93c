# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import math

import numpy as np
import pytest

from tinynet.recurrent import RecurrentCell


def _logistic(x):
    return 1.0 / (1.0 + math.exp(-x))


def test_initial_state_and_parameters():
    cell = RecurrentCell(seed=0)
    assert cell.state == (0.0, 0.0)
    for params in (cell.wi, cell.wstm, cell.bstm):
        assert params.shape == (4,)
        assert np.all(params >= 0.0) and np.all(params < 5.0)


def test_transition_matches_gate_equations():
    cell = RecurrentCell(seed=1)
    cell.wi[:] = [0.1, 0.2, 0.3, 0.4]
    cell.wstm[:] = [0.5, 0.6, 0.7, 0.8]
    cell.bstm[:] = [0.01, 0.02, 0.03, 0.04]
    x, stm, ltm = 0.9, -0.3, 0.25

    g = [x * cell.wi[n] + stm * cell.wstm[n] + cell.bstm[n] for n in range(4)]
    ltm_new = ltm * _logistic(g[0]) + _logistic(g[1]) * math.tanh(g[2])
    stm_new = math.tanh(ltm_new) * _logistic(g[3])

    got_stm, got_ltm = cell.transition(x, stm, ltm)
    assert got_ltm == pytest.approx(ltm_new, abs=1e-12)
    assert got_stm == pytest.approx(stm_new, abs=1e-12)


def test_predict_does_not_mutate_state():
    cell = RecurrentCell(seed=2)
    cell.set_state(stm=0.1, ltm=-0.2)
    out = cell.predict(0.7)
    assert cell.state == (0.1, -0.2)
    assert out == cell.step(0.7)[0]


def test_predict_then_step_differs_from_two_steps():
    a = RecurrentCell(seed=3)
    b = RecurrentCell(seed=3)
    a.predict(1.0)
    a.step(1.0)
    b.step(1.0)
    b.step(1.0)
    assert a.state != b.state


def test_step_is_a_pure_function_of_input_and_state():
    cell = RecurrentCell(seed=4)
    cell.set_state(stm=0.3, ltm=0.6)
    first = cell.step(-0.5)
    cell.set_state(stm=0.3, ltm=0.6)
    second = cell.step(-0.5)
    assert first == second


def test_run_is_a_left_fold():
    xs = [0.2, -1.0, 0.5, 0.0, 2.0]
    cell = RecurrentCell(seed=5)
    stm, ltm = 0.0, 0.0
    for x in xs:
        stm, ltm = cell.transition(x, stm, ltm)

    assert cell.run(xs) == pytest.approx((stm, ltm))


def test_state_is_carried_until_reset():
    cell = RecurrentCell(seed=6)
    cell.run([1.0, 1.0])
    assert cell.state != (0.0, 0.0)
    cell.reset()
    assert cell.state == (0.0, 0.0)


def test_record_round_trip():
    cell = RecurrentCell(seed=7)
    cell.step(0.4)
    clone = RecurrentCell.from_record(cell.to_record())
    assert clone.state == cell.state
    assert clone.transition(0.1, 0.2, 0.3) == cell.transition(0.1, 0.2, 0.3)


def test_record_with_wrong_parameter_count_raises():
    record = RecurrentCell(seed=8).to_record()
    record["wi"] = record["wi"][:3]
    with pytest.raises(ValueError):
        RecurrentCell.from_record(record)
