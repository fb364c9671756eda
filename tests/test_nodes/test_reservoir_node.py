"""Tests for ReservoirNode."""

import pytest
import torch

from rcgraph import (
    DimensionMismatch,
    InvalidParameter,
    InvalidState,
    NodeType,
    RCError,
    ReservoirNode,
    ReservoirParams,
)
from rcgraph.init.topology import get_topology
from rcgraph.utils import spectral_radius


class TestReservoirNodeBasics:
    """Construction and dimensions."""

    def test_dimensions(self):
        """Output and state dimensions equal the number of units."""
        node = ReservoirNode(100)

        assert node.output_dim == 100
        assert node.state_dim == 100
        assert node.input_dim is None
        assert node.node_type == NodeType.RESERVOIR
        assert node.weight_hh.shape == (100, 100)
        assert node.weight_in is None

    def test_eager_input_weights(self):
        """input_dim given at construction allocates input weights."""
        node = ReservoirNode(20, input_dim=3)

        assert node.input_dim == 3
        assert node.weight_in.shape == (20, 3)

    def test_initial_state_is_zero(self):
        """A fresh reservoir has an all-zero state."""
        node = ReservoirNode(10)

        assert torch.equal(node.get_state(), torch.zeros(10))

    def test_from_params(self):
        """A parameter record builds the same reservoir as keyword arguments."""
        params = ReservoirParams(units=15, spectral_radius=1.1, seed=4, input_dim=2)

        a = ReservoirNode.from_params(params)
        b = ReservoirNode(15, spectral_radius=1.1, seed=4, input_dim=2)

        assert torch.equal(a.weight_hh, b.weight_hh)
        assert torch.equal(a.weight_in, b.weight_in)

    def test_spectral_radius_matches_target(self):
        """The recurrent matrix is rescaled to the requested spectral radius."""
        node = ReservoirNode(80, spectral_radius=1.25, sparsity=0.1, seed=3)

        assert spectral_radius(node.weight_hh) == pytest.approx(1.25, abs=1e-3)

    def test_sparsity_fraction(self):
        """Roughly (1 - sparsity) of the recurrent weights are non-zero."""
        node = ReservoirNode(100, sparsity=0.8, seed=0)

        density = (node.weight_hh != 0).float().mean().item()
        assert density == pytest.approx(0.2, abs=0.05)

    def test_full_sparsity_gives_zero_matrix(self):
        """sparsity=1 leaves the recurrent matrix at zero."""
        node = ReservoirNode(10, sparsity=1.0)

        assert torch.all(node.weight_hh == 0)

    def test_input_weights_within_scaling(self):
        """Input weights lie in [-input_scaling, input_scaling]."""
        node = ReservoirNode(50, input_scaling=0.3, input_dim=4)

        assert node.weight_in.abs().max().item() <= 0.3


class TestReservoirNodeParameters:
    """Parameter validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"units": 0},
            {"units": 10, "leak_rate": 0.0},
            {"units": 10, "leak_rate": 1.5},
            {"units": 10, "sparsity": 1.5},
            {"units": 10, "sparsity": -0.1},
            {"units": 10, "spectral_radius": -1.0},
            {"units": 10, "input_scaling": -1.0},
            {"units": 10, "activation": "softmax"},
            {"units": 10, "seed": -1},
            {"units": 10, "input_dim": 0},
            {"units": 10, "leak_rate": None},
            {"units": 10, "spectral_radius": "0.9"},
            {"units": 10, "sparsity": True},
            {"units": 10, "input_scaling": float("nan")},
        ],
    )
    def test_invalid_parameters_raise(self, kwargs):
        """Out-of-range parameters raise InvalidParameter."""
        with pytest.raises(InvalidParameter):
            ReservoirNode(**kwargs)

    def test_invalid_parameter_is_value_error(self):
        """InvalidParameter can be caught as ValueError."""
        with pytest.raises(ValueError):
            ReservoirNode(10, leak_rate=2.0)

    def test_leak_rate_one_is_valid(self):
        """leak_rate=1 is the upper bound of the valid range."""
        node = ReservoirNode(10, leak_rate=1.0, input_dim=1)

        assert node([0.5]).shape == (10,)

    def test_invalid_topology_type_raises(self):
        """topology must be a name or a TopologyInitializer."""
        with pytest.raises(InvalidParameter, match="topology must be"):
            ReservoirNode(10, topology=42)

    def test_unknown_topology_name_raises(self):
        """An unregistered topology name is an invalid parameter."""
        with pytest.raises(InvalidParameter, match="Unknown topology 'bogus'"):
            ReservoirNode(10, topology="bogus")

    def test_topology_errors_are_library_errors(self):
        """Topology errors belong to the RCError family and stay ValueErrors."""
        with pytest.raises(RCError):
            ReservoirNode(10, topology="bogus")
        with pytest.raises(ValueError):
            ReservoirNode(10, topology=object())


class TestReservoirNodeForward:
    """Forward computation."""

    def test_update_rule(self):
        """Forward follows the leaky-integrator update."""
        node = ReservoirNode(10, leak_rate=0.5, input_dim=2, seed=0)
        x = torch.tensor([1.0, -0.5])

        h0 = node.get_state()
        h1 = node(x)
        expected1 = 0.5 * h0 + 0.5 * torch.tanh(node.weight_in @ x + node.weight_hh @ h0)
        assert torch.allclose(h1, expected1, atol=1e-6)

        h2 = node(x)
        expected2 = 0.5 * h1 + 0.5 * torch.tanh(node.weight_in @ x + node.weight_hh @ h1)
        assert torch.allclose(h2, expected2, atol=1e-6)

    def test_output_equals_state(self):
        """The returned vector is the new state."""
        node = ReservoirNode(10, input_dim=1)

        out = node([0.3])

        assert torch.equal(out, node.get_state())

    def test_lazy_input_dim(self):
        """The first forward call fixes the input dimension."""
        node = ReservoirNode(50)

        out = node([0.1, 0.2, 0.3, 0.4, 0.5])

        assert out.shape == (50,)
        assert node.input_dim == 5
        assert node.weight_in.shape == (50, 5)

        with pytest.raises(DimensionMismatch):
            node([0.1, 0.2, 0.3])

    def test_empty_input_raises(self):
        """A reservoir cannot be driven by an empty vector."""
        node = ReservoirNode(10)

        with pytest.raises(DimensionMismatch, match="must not be empty"):
            node([])

    def test_wrong_length_raises(self):
        """Inputs must match the configured input_dim."""
        node = ReservoirNode(10, input_dim=2)

        with pytest.raises(DimensionMismatch):
            node([1.0, 2.0, 3.0])

    def test_state_depends_on_history(self):
        """Same input twice gives different outputs once the state moved."""
        node = ReservoirNode(20, input_dim=1)

        out1 = node([0.5])
        out2 = node([0.5])

        assert not torch.allclose(out1, out2)

    def test_tanh_output_range(self):
        """With tanh activation the state stays within [-1, 1]."""
        node = ReservoirNode(30, input_scaling=100.0, input_dim=2)

        for _ in range(10):
            out = node([5.0, -5.0])

        assert out.abs().max().item() <= 1.0

    def test_sigmoid_output_range(self):
        """With sigmoid activation the state stays within [0, 1]."""
        node = ReservoirNode(30, activation="sigmoid", input_dim=1)

        for _ in range(10):
            out = node([3.0])

        assert out.min().item() >= 0.0
        assert out.max().item() <= 1.0

    def test_relu_output_non_negative(self):
        """With relu activation the state is never negative."""
        node = ReservoirNode(30, activation="relu", input_dim=1)

        for _ in range(10):
            out = node([-2.0])

        assert out.min().item() >= 0.0

    def test_reset_zeros_state(self):
        """Reset returns the state to zeros."""
        node = ReservoirNode(10, input_dim=1)
        node([1.0])

        node.reset()

        assert torch.equal(node.get_state(), torch.zeros(10))

    def test_reset_replays_sequence(self):
        """After reset the same input sequence produces identical outputs."""
        node = ReservoirNode(25, input_dim=2, seed=9)
        sequence = torch.randn(15, 2, generator=torch.Generator().manual_seed(0))

        first = torch.stack([node(x) for x in sequence])
        node.reset()
        second = torch.stack([node(x) for x in sequence])

        assert torch.equal(first, second)

    def test_set_state_round_trip(self):
        """Restoring a saved state reproduces the following output."""
        node = ReservoirNode(10, input_dim=1)
        for value in (0.1, 0.2, 0.3):
            node([value])

        saved = node.get_state()
        out1 = node([0.4])
        node.set_state(saved)
        out2 = node([0.4])

        assert torch.equal(out1, out2)

    def test_get_state_is_a_copy(self):
        """Mutating the returned state does not change the node."""
        node = ReservoirNode(5, input_dim=1)
        node([1.0])

        state = node.get_state()
        state.zero_()

        assert not torch.all(node.get_state() == 0)

    def test_set_state_wrong_length_raises(self):
        """set_state rejects vectors of the wrong length."""
        node = ReservoirNode(10)

        with pytest.raises(DimensionMismatch, match="State size mismatch"):
            node.set_state(torch.zeros(9))


class TestReservoirNodeDeterminism:
    """Seeded weight generation."""

    def test_same_seed_same_weights(self):
        """Two reservoirs with the same seed have identical weights."""
        a = ReservoirNode(30, seed=123, input_dim=2)
        b = ReservoirNode(30, seed=123, input_dim=2)

        assert torch.equal(a.weight_hh, b.weight_hh)
        assert torch.equal(a.weight_in, b.weight_in)

    def test_different_seed_different_weights(self):
        """Different seeds give different weights."""
        a = ReservoirNode(30, seed=1)
        b = ReservoirNode(30, seed=2)

        assert not torch.equal(a.weight_hh, b.weight_hh)

    def test_eager_and_lazy_input_weights_match(self):
        """Deferring input_dim to the first forward gives the same input weights."""
        eager = ReservoirNode(20, seed=7, input_dim=3)
        lazy = ReservoirNode(20, seed=7)
        lazy([0.1, 0.2, 0.3])

        assert torch.equal(eager.weight_in, lazy.weight_in)

    def test_independent_of_global_rng(self):
        """Weights do not depend on the global torch generator."""
        torch.manual_seed(0)
        a = ReservoirNode(20, seed=5)
        torch.randn(1000)
        torch.manual_seed(99)
        b = ReservoirNode(20, seed=5)

        assert torch.equal(a.weight_hh, b.weight_hh)

    def test_independent_of_other_nodes(self):
        """Creating other reservoirs in between does not change the weights."""
        a = ReservoirNode(20, seed=11)
        ReservoirNode(20, seed=12)([1.0])
        a([1.0, 2.0])

        b = ReservoirNode(20, seed=11)
        b([1.0, 2.0])

        assert torch.equal(a.weight_in, b.weight_in)


class TestReservoirNodeTopology:
    """Graph topologies for the recurrent matrix."""

    def test_named_topology(self):
        """A registered topology name drives the recurrent structure."""
        node = ReservoirNode(12, spectral_radius=0.8, topology="ring")

        assert int((node.weight_hh != 0).sum()) == 12
        assert spectral_radius(node.weight_hh) == pytest.approx(0.8, abs=1e-3)

    def test_topology_instance(self):
        """A TopologyInitializer instance is used as given."""
        topology = get_topology("erdos_renyi", p=0.2)

        node = ReservoirNode(40, spectral_radius=0.95, topology=topology, seed=1)

        assert spectral_radius(node.weight_hh) == pytest.approx(0.95, abs=1e-3)

    def test_topology_is_seeded(self):
        """Same node seed gives the same graph."""
        a = ReservoirNode(30, topology="erdos_renyi", seed=3)
        b = ReservoirNode(30, topology="erdos_renyi", seed=3)
        c = ReservoirNode(30, topology="erdos_renyi", seed=4)

        assert torch.equal(a.weight_hh, b.weight_hh)
        assert not torch.equal(a.weight_hh, c.weight_hh)


class TestReservoirNodeRelease:
    """Releasing standalone nodes."""

    def test_free_standalone(self):
        """A freed node rejects further use."""
        node = ReservoirNode(10, input_dim=1)

        node.free()

        assert node.is_released
        with pytest.raises(InvalidState, match="has been freed"):
            node([1.0])
        with pytest.raises(InvalidState):
            node.get_state()
        with pytest.raises(InvalidState):
            node.reset()
