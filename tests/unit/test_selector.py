"""Unit tests for target version selection."""

import random

import pytest

from hupladder.services.selector import select_target_version


@pytest.mark.unit
class TestSelectTargetVersion:
    """Test select_target_version."""

    @pytest.mark.parametrize("versions", [[], ["2.0.0"]])
    def test_no_target_for_short_lists(self, versions):
        """Lists with fewer than two entries mean the ladder is done."""
        assert select_target_version(versions) is None
        assert select_target_version(versions, random_order=True) is None

    def test_positional_default_step(self):
        """L=5, step=1 selects index 3."""
        versions = ["2.4.0", "2.3.0", "2.2.0", "2.1.0", "2.0.0"]

        assert select_target_version(versions, step=1) == "2.1.0"

    def test_positional_larger_step(self):
        """L=5, step=2 selects index 1."""
        versions = ["2.4.0", "2.3.0", "2.2.0", "2.1.0", "2.0.0"]

        assert select_target_version(versions, step=2) == "2.3.0"

    def test_two_entries_picks_newer(self):
        assert select_target_version(["2.1.0", "2.0.0"]) == "2.1.0"

    def test_step_beyond_list_clamps_to_newest(self):
        """A step that would index before the start picks the first entry."""
        versions = ["2.2.0", "2.1.0", "2.0.0"]

        assert select_target_version(versions, step=5) == "2.2.0"

    def test_random_order_membership(self):
        """Random picks always come from the candidate list."""
        versions = ["2.4.0", "2.3.0", "2.2.0", "2.1.0", "2.0.0"]
        rng = random.Random(1234)

        picks = {
            select_target_version(versions, random_order=True, rng=rng)
            for _ in range(200)
        }

        assert picks <= set(versions)
        # 200 uniform draws over 5 entries hit more than one of them
        assert len(picks) > 1

    def test_random_order_uses_given_rng(self):
        versions = ["2.2.0", "2.1.0", "2.0.0"]

        first = select_target_version(versions, random_order=True, rng=random.Random(7))
        second = select_target_version(versions, random_order=True, rng=random.Random(7))

        assert first == second
