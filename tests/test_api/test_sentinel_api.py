"""Tests for the sentinel-returning functional interface."""

import logging

import pytest
import torch

from rcgraph import InputNode, Model, ReservoirNode, RidgeNode, UntrainedWarning, api
from rcgraph.config import ReservoirParams, RidgeParams


@pytest.fixture
def chain():
    """Input(3) -> Reservoir(20) -> Ridge(20, 2) built through the api."""
    model = api.model_create("chain")
    inp = api.model_add_node(model, api.create_input(3), "input")
    res = api.model_add_node(
        model, api.create_reservoir(ReservoirParams(units=20, seed=1)), "reservoir"
    )
    out = api.model_add_node(model, api.create_ridge(RidgeParams(20, 2)), "readout")
    assert api.model_connect(model, inp, res)
    assert api.model_connect(model, res, out)
    return model


class TestNodeFunctions:
    """Node creation and operations."""

    def test_create_nodes(self):
        """Valid parameters give nodes of the requested sizes."""
        reservoir = api.create_reservoir(ReservoirParams(units=10))
        ridge = api.create_ridge(RidgeParams(10, 2, ridge=1e-3))
        inp = api.create_input(4)

        assert isinstance(reservoir, ReservoirNode)
        assert isinstance(ridge, RidgeNode)
        assert isinstance(inp, InputNode)
        assert api.node_get_output_dim(reservoir) == 10
        assert api.node_get_state_dim(reservoir) == 10
        assert api.node_get_output_dim(ridge) == 2
        assert api.node_get_state_dim(inp) == 0

    def test_create_with_invalid_params_returns_none(self, caplog):
        """Invalid parameters return None and log an error."""
        with caplog.at_level(logging.ERROR, logger="rcgraph.api"):
            assert api.create_reservoir(ReservoirParams(units=0)) is None
            assert api.create_reservoir(ReservoirParams(units=5, leak_rate=2.0)) is None
            assert api.create_ridge(RidgeParams(10, 2, ridge=-1.0)) is None
            assert api.create_input(0) is None

        assert "create_reservoir failed" in caplog.text
        assert "create_ridge failed" in caplog.text
        assert "create_input failed" in caplog.text

    @pytest.mark.parametrize(
        "params",
        [
            ReservoirParams(units=10, leak_rate=None),
            ReservoirParams(units=10, spectral_radius="big"),
            ReservoirParams(units=10, sparsity=True),
            ReservoirParams(units="10"),
        ],
    )
    def test_create_reservoir_with_malformed_record_returns_none(self, params, caplog):
        """Fields of the wrong type are reported like out-of-range values."""
        with caplog.at_level(logging.ERROR, logger="rcgraph.api"):
            assert api.create_reservoir(params) is None

        assert "create_reservoir failed" in caplog.text

    def test_create_ridge_with_malformed_record_returns_none(self):
        """A non-numeric ridge strength returns None."""
        assert api.create_ridge(RidgeParams(10, 2, ridge="big")) is None
        assert api.create_ridge(RidgeParams(10, 2, ridge=None)) is None

    def test_node_forward_non_numeric_returns_none(self, caplog):
        """Non-numeric input to a node returns None."""
        node = api.create_input(2)

        with caplog.at_level(logging.ERROR, logger="rcgraph.api"):
            assert api.node_forward(node, ["x", "y"]) is None

        assert "Cannot convert" in caplog.text

    def test_node_forward(self):
        """Forward returns a new tensor, or None on a bad input."""
        node = api.create_reservoir(ReservoirParams(units=8, input_dim=2))

        out = api.node_forward(node, [0.1, 0.2])

        assert out.shape == (8,)
        assert api.node_forward(node, [0.1, 0.2, 0.3]) is None

    def test_node_state_functions(self):
        """State getters and setters report failures through return values."""
        node = api.create_reservoir(ReservoirParams(units=5, input_dim=1))
        api.node_forward(node, [1.0])

        state = api.node_get_state(node)
        assert state.shape == (5,)
        assert api.node_set_state(node, torch.zeros(5))
        assert not api.node_set_state(node, torch.zeros(4))

        api.node_set_state(node, state)
        api.node_reset(node)
        assert torch.equal(api.node_get_state(node), torch.zeros(5))

    def test_node_free(self):
        """Freeing a standalone node releases it; None is ignored."""
        node = api.create_input(2)

        api.node_free(node)
        api.node_free(None)

        assert node.is_released
        assert api.node_get_state(node) is None
        assert api.node_forward(node, [1.0, 2.0]) is None

    def test_node_free_owned_is_refused(self, caplog):
        """A node owned by a model is not released by node_free."""
        model = api.model_create()
        node = api.create_input(2)
        api.model_add_node(model, node)

        with caplog.at_level(logging.ERROR, logger="rcgraph.api"):
            api.node_free(node)

        assert not node.is_released
        assert "node_free failed" in caplog.text


class TestModelFunctions:
    """Model operations."""

    def test_model_add_node_indices(self, chain):
        """Nodes get sequential indices."""
        assert isinstance(chain, Model)
        assert api.model_get_node_count(chain) == 3

    def test_model_add_node_errors(self, chain):
        """Re-adding a node or passing None returns -1."""
        owned = chain.node(0)

        assert api.model_add_node(chain, owned) == -1
        assert api.model_add_node(chain, None) == -1
        assert api.model_add_node(chain, api.create_input(1), "input") == -1
        assert api.model_get_node_count(chain) == 3

    def test_model_connect_errors(self, chain):
        """Invalid edges return False and leave the graph as it was."""
        assert not api.model_connect(chain, 0, 0)
        assert not api.model_connect(chain, 0, 7)
        assert not api.model_connect(chain, 2, 0)
        assert not api.model_connect(chain, 0, 1)
        assert chain.edges == [(0, 1), (1, 2)]

    def test_model_run(self, chain):
        """Run returns the sink output, or None for a bad input."""
        with pytest.warns(UntrainedWarning):
            out = api.model_run(chain, [0.1, 0.2, 0.3])

        assert out.shape == (2,)
        assert api.model_run(chain, [0.1]) is None

    def test_model_run_non_numeric_returns_none(self, chain):
        """Inputs that are not numbers return None instead of raising."""
        assert api.model_run(chain, ["a", "b", "c"]) is None
        assert api.model_run(chain, None) is None
        assert api.model_run(chain, [[0.1], [0.2, 0.3]]) is None

    def test_model_run_logs_failing_node(self, caplog):
        """A failure inside the graph is logged with the node that raised it."""
        model = api.model_create()
        inp = api.model_add_node(model, api.create_input(2), "input")
        out = api.model_add_node(model, api.create_ridge(RidgeParams(5, 1)), "readout")
        api.model_connect(model, inp, out)

        with caplog.at_level(logging.ERROR, logger="rcgraph.api"):
            assert api.model_run(model, [0.1, 0.2]) is None

        assert "model_run failed" in caplog.text
        assert "raised by node 1 (readout)" in caplog.text

    def test_model_fit(self, chain):
        """Fit returns True on success and False on bad arguments."""
        X = torch.rand(60, 3, generator=torch.Generator().manual_seed(0))
        y = X[:, :2]

        assert not api.model_fit(chain, X, y, batch_size=60, warmup=60)
        assert not chain.node("readout").is_fitted

        assert api.model_fit(chain, X, y, batch_size=60, warmup=10)
        assert chain.node("readout").is_fitted

    def test_model_reset(self, chain):
        """Reset zeros the reservoir state."""
        with pytest.warns(UntrainedWarning):
            api.model_run(chain, [1.0, 1.0, 1.0])

        api.model_reset(chain)

        assert torch.equal(api.node_get_state(chain.node(1)), torch.zeros(20))

    def test_model_free(self, chain):
        """Freeing a model releases its nodes and later calls fail softly."""
        nodes = list(chain.nodes)

        api.model_free(chain)
        api.model_free(None)

        assert all(node.is_released for node in nodes)
        assert api.model_run(chain, [0.1, 0.2, 0.3]) is None
        assert not api.model_connect(chain, 0, 1)
