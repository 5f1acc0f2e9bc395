"""Tests for the variable store and resolver."""

import pytest

from flash_workflow.workflow.variables import VariableStore


class TestResolve:
    """Tests for VariableStore.resolve."""

    def test_brace_form(self):
        """Test ${name} is substituted."""
        store = VariableStore({"Port": "COM3"})
        assert store.resolve("flash ${Port}") == "flash COM3"

    def test_paren_form(self):
        """Test $(name) is substituted."""
        store = VariableStore({"Port": "COM3"})
        assert store.resolve("flash $(Port)") == "flash COM3"

    def test_every_occurrence_replaced(self):
        """Test all occurrences of both forms are replaced."""
        store = VariableStore({"X": "1"})
        assert store.resolve("${X}-$(X)-${X}") == "1-1-1"

    def test_unbound_left_unchanged(self):
        """Test references to unbound names stay as written."""
        store = VariableStore({"X": "1"})
        assert store.resolve("${Missing} $(Missing) ${X}") == "${Missing} $(Missing) 1"

    def test_empty_and_none_passthrough(self):
        """Test empty and None input are returned unchanged."""
        store = VariableStore({"X": "1"})
        assert store.resolve("") == ""
        assert store.resolve(None) is None

    def test_value_with_own_token_not_reexpanded(self):
        """Test a value containing its own token is substituted once."""
        store = VariableStore({"Loop": "${Loop}!"})
        assert store.resolve("${Loop}") == "${Loop}!"

    def test_substituted_value_not_rescanned(self):
        """Test a value holding another variable's token stays literal."""
        store = VariableStore({"A": "${B}", "B": "x"})
        assert store.resolve("${A}") == "${B}"

    def test_binding_order_does_not_matter(self):
        """Test the same bindings in reverse order resolve identically."""
        forward = VariableStore({"A": "$(B)", "B": "x"})
        backward = VariableStore({"B": "x", "A": "$(B)"})
        template = "${A} $(A) ${B}"
        assert forward.resolve(template) == backward.resolve(template) == "$(B) $(B) x"

    def test_name_is_case_sensitive(self):
        """Test variable names match exactly."""
        store = VariableStore({"port": "COM3"})
        assert store.resolve("${Port}") == "${Port}"

    def test_dollar_without_delimiters_untouched(self):
        """Test bare $name is not a reference."""
        store = VariableStore({"X": "1"})
        assert store.resolve("$X") == "$X"


class TestLayering:
    """Tests for set/update/freeze."""

    def test_later_layer_overwrites(self):
        """Test update overwrites same-named entries."""
        store = VariableStore({"A": "builtin", "B": "keep"})
        store.update({"A": "workflow"})
        store.update({"A": "override"})
        assert store.get("A") == "override"
        assert store.get("B") == "keep"

    def test_get_unbound_returns_empty(self):
        """Test unbound names read as empty strings."""
        assert VariableStore().get("Nope") == ""

    def test_none_value_stored_as_empty(self):
        """Test None values are stored as empty strings."""
        store = VariableStore()
        store.set("A", None)
        assert store.get("A") == ""
        assert "A" in store

    def test_frozen_store_rejects_writes(self):
        """Test writes after freeze raise."""
        store = VariableStore({"A": "1"})
        store.freeze()
        assert store.frozen
        with pytest.raises(RuntimeError):
            store.set("A", "2")
        assert store.get("A") == "1"

    def test_container_protocol(self):
        """Test len, iteration and as_dict."""
        store = VariableStore({"A": "1", "B": "2"})
        assert len(store) == 2
        assert set(store) == {"A", "B"}
        assert store.as_dict() == {"A": "1", "B": "2"}
