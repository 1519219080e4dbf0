import pytest

from game.logic.exceptions import UnsupportedSettingsError
from game.logic.settings import (
    BOARD_MULTIPLIER_BASE,
    MAX_BOARD_LEVEL,
    NUM_PLAYERS,
    RAINBOW_BONUS,
    RAINBOW_HAND_SIZE,
    ROUND_HAND_SIZES,
    TOTAL_ROUNDS,
    GameSettings,
    validate_settings,
)


class TestDefaults:
    def test_standard_schedule(self):
        assert ROUND_HAND_SIZES == (10, 9, 8, 7, 6, 5, 4, 3, 2, 1, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10)
        assert TOTAL_ROUNDS == 20

    def test_model_defaults_mirror_constants(self):
        settings = GameSettings()
        assert settings.num_players == NUM_PLAYERS == 5
        assert settings.rainbow_hand_size == RAINBOW_HAND_SIZE == 4
        assert settings.rainbow_bonus == RAINBOW_BONUS == 8
        assert settings.max_board_level == MAX_BOARD_LEVEL == 5
        assert settings.board_multiplier_base == BOARD_MULTIPLIER_BASE == 6
        assert settings.total_rounds == 20
        assert settings.last_round_index == 19

    def test_rainbow_hand_check(self):
        settings = GameSettings()
        assert settings.is_rainbow_hand(4) is True
        assert settings.is_rainbow_hand(5) is False

    def test_defaults_are_valid(self):
        validate_settings(GameSettings())


class TestValidateSettings:
    def test_too_few_players(self):
        with pytest.raises(UnsupportedSettingsError, match="num_players"):
            validate_settings(GameSettings(num_players=1))

    def test_empty_schedule(self):
        with pytest.raises(UnsupportedSettingsError, match="at least one round"):
            validate_settings(GameSettings(round_hand_sizes=()))

    def test_zero_hand_size(self):
        with pytest.raises(UnsupportedSettingsError, match="hand size 0"):
            validate_settings(GameSettings(round_hand_sizes=(4, 0)))

    def test_hand_too_large_for_deck(self):
        # 11 cards to 5 seats needs 55
        with pytest.raises(UnsupportedSettingsError, match="52-card deck"):
            validate_settings(GameSettings(round_hand_sizes=(11, 4)))

    def test_six_players_can_play_eight_cards(self):
        validate_settings(GameSettings(num_players=6, round_hand_sizes=(8, 4, 8)))

    def test_rainbow_hand_not_dealt(self):
        with pytest.raises(UnsupportedSettingsError, match="rainbow_hand_size"):
            validate_settings(GameSettings(round_hand_sizes=(3, 2, 1)))

    def test_board_limits(self):
        with pytest.raises(UnsupportedSettingsError, match="max_board_level"):
            validate_settings(GameSettings(max_board_level=0))
        with pytest.raises(UnsupportedSettingsError, match="board_multiplier_base"):
            validate_settings(GameSettings(board_multiplier_base=0))
