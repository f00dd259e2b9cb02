import pytest

from oauthio.models.errors import CsrfStateMismatch
from oauthio.primitives.state import State, validate_state


class TestState:
    def test_new_state_is_random_and_url_safe(self) -> None:
        # Act
        states = [State.new() for _ in range(20)]

        # Assert
        values = {state.get_secret_value() for state in states}
        assert len(values) == 20
        for value in values:
            # 32 random bytes, base64url without padding
            assert len(value) == 43
            assert all(chr(b).isalnum() or chr(b) in "-_" for b in value)

    def test_text_and_bytes_construct_equal_states(self) -> None:
        # Arrange & Act
        from_text = State("abc")
        from_bytes = State(b"abc")

        # Assert
        assert from_text == from_bytes
        assert hash(from_text) == hash(from_bytes)

    def test_state_is_masked_in_str_and_repr(self) -> None:
        # Arrange
        state = State("super-secret-state")

        # Assert
        assert "super-secret-state" not in str(state)
        assert "super-secret-state" not in repr(state)
        assert state.get_secret_value() == b"super-secret-state"

    def test_state_does_not_equal_plain_bytes(self) -> None:
        # Assert
        assert State("abc") != b"abc"


class TestValidateState:
    def test_matching_states_pass(self) -> None:
        # Act & Assert - no exception
        validate_state(State("abc"), State("abc"))

    def test_mismatching_states_raise(self) -> None:
        # Act & Assert
        with pytest.raises(CsrfStateMismatch):
            validate_state(State("abc"), State("xyz"))

    def test_missing_returned_state_raises(self) -> None:
        # Act & Assert
        with pytest.raises(CsrfStateMismatch, match="Missing"):
            validate_state(State("abc"), None)

    def test_unexpected_returned_state_raises(self) -> None:
        # Act & Assert
        with pytest.raises(CsrfStateMismatch, match="Unexpected"):
            validate_state(None, State("abc"))

    def test_no_state_on_either_side_passes(self) -> None:
        # Act & Assert - no exception
        validate_state(None, None)
