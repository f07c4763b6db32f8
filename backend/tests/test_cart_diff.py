"""Tests for the cart diff used to build kitchen tickets."""

from app.services.cart_diff import CartLine, LineKey, diff, merge_lines


class TestCartDiff:
    """diff(prior, current) emits only new lines and quantity increases."""

    def test_increase_and_new_line(self):
        """Existing order dispatched X:2; cart edited to X:3, Y:1."""
        prior = [CartLine("X", 2)]
        current = [CartLine("X", 3), CartLine("Y", 1)]

        delta = diff(prior, current)

        assert [(line.item_id, line.quantity) for line in delta] == [("X", 1), ("Y", 1)]

    def test_empty_prior_sends_whole_cart(self):
        current = [CartLine("X", 2, name="Paneer"), CartLine("Y", 1)]
        assert diff([], current) == current

    def test_unchanged_cart_is_empty(self):
        lines = [CartLine("X", 2), CartLine("Y", 1, size="HALF")]
        assert diff(lines, lines) == []

    def test_decrease_and_removal_emit_nothing(self):
        prior = [CartLine("X", 3), CartLine("Y", 2)]
        current = [CartLine("X", 1)]
        assert diff(prior, current) == []

    def test_sizes_are_separate_lines(self):
        prior = [CartLine("dal", 1, size="HALF")]
        current = [CartLine("dal", 1, size="HALF"), CartLine("dal", 1, size="FULL")]

        delta = diff(prior, current)

        assert len(delta) == 1
        assert delta[0].key == LineKey("dal", "FULL")
        assert delta[0].quantity == 1

    def test_blank_size_matches_no_size(self):
        assert diff([CartLine("X", 1, size="")], [CartLine("X", 1)]) == []

    def test_duplicate_cart_lines_are_merged(self):
        current = [CartLine("X", 1), CartLine("Y", 1), CartLine("X", 2)]
        merged = merge_lines(current)
        assert [(line.item_id, line.quantity) for line in merged] == [("X", 3), ("Y", 1)]
        assert diff([CartLine("X", 1)], current)[0].quantity == 2

    def test_delta_is_positive_and_drawn_from_current(self):
        prior = [CartLine("A", 5), CartLine("B", 1), CartLine("C", 2)]
        current = [CartLine("A", 2), CartLine("B", 4), CartLine("D", 1)]
        current_keys = {line.key for line in current}

        for line in diff(prior, current):
            assert line.quantity > 0
            assert line.key in current_keys

    def test_delta_keeps_display_name(self):
        delta = diff([], [CartLine("X", 1, name="Paneer Tikka")])
        assert delta[0].name == "Paneer Tikka"
