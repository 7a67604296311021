import pytest

from betsim.combos import compose_combo
from betsim.errors import ComboConstraintError, UnknownMarketError, ValidationError
from betsim.markets import MarketType


def test_two_corner_lines_are_rejected():
    with pytest.raises(ComboConstraintError) as exc:
        compose_combo(None, None, ["total_corners_over_2_5", "total_corners_under_1_5"])
    assert exc.value.group == "corners"
    assert "corners" in str(exc.value)


@pytest.mark.parametrize("markets,group", [
    (["total_goals_over_2_5", "home_goals_over_1_5"], "goals"),
    (["total_yellow_cards_over_2_5", "team1_yellow_cards_over_1_5"], "yellow cards"),
    (["total_red_cards_no", "team2_red_card_yes"], "red cards"),
])
def test_one_selection_per_group(markets, group):
    with pytest.raises(ComboConstraintError) as exc:
        compose_combo(None, None, markets)
    assert exc.value.group == group


def test_both_teams_score_with_one_group():
    quote = compose_combo(None, None, ["both_teams_score", "total_goals_over_2_5"])
    assert quote.price == round(1.10 * 1.35, 2)


def test_both_teams_score_with_two_groups():
    with pytest.raises(ComboConstraintError) as exc:
        compose_combo(None, None, ["both_teams_score", "total_goals_over_2_5", "total_corners_over_4_5"])
    assert exc.value.group == "both teams score"


def test_ungrouped_markets_combine_freely():
    quote = compose_combo(None, None, ["header_goal", "striker_goal", "total_corners_over_2_5"])
    assert len(quote.legs) == 3
    assert quote.price == round(1.8 * 1.5 * 1.15, 2)


def test_price_is_product_of_legs(leader, midtable):
    quote = compose_combo(leader, midtable, ["mas-2-5", "mas-4-5-corners"])
    assert [leg.market for leg in quote.legs] == [MarketType.TOTAL_GOALS_OVER_2_5, MarketType.TOTAL_CORNERS_OVER_4_5]
    expected = 1.0
    for leg in quote.legs:
        expected *= leg.price
    assert quote.price == round(expected, 2)
    assert quote.description == "Over 2.5 goals + Over 4.5 corners"


def test_empty_combo():
    with pytest.raises(ValidationError):
        compose_combo(None, None, [])


def test_duplicate_selection():
    with pytest.raises(ValidationError):
        compose_combo(None, None, ["header_goal", "cabeza"])


def test_unknown_selection():
    with pytest.raises(UnknownMarketError):
        compose_combo(None, None, ["header_goal", "own_goal"])
