from gaspro_dashboard.navigation import DateNavigator

DATES = ["2024-01-01", "2024-01-03", "2024-01-07"]


def _nav(dates=DATES):
    nav = DateNavigator()
    nav.sync(dates)
    return nav


def test_first_load_selects_latest():
    nav = _nav()
    assert nav.selected == "2024-01-07"
    assert nav.is_latest


def test_empty_history_keeps_no_selection():
    nav = DateNavigator()
    assert nav.sync([]) is None
    assert nav.previous() is None
    assert nav.next() is None
    assert not nav.has_previous() and not nav.has_next()


def test_first_load_after_empty_sync_selects_latest():
    nav = DateNavigator()
    nav.sync([])
    nav.sync(DATES)
    assert nav.selected == "2024-01-07"


def test_selection_follows_new_latest_date():
    nav = _nav()
    nav.sync([*DATES, "2024-01-09"])
    assert nav.selected == "2024-01-09"


def test_older_selection_stays_when_new_dates_arrive():
    nav = _nav()
    nav.previous()
    nav.sync([*DATES, "2024-01-09"])
    assert nav.selected == "2024-01-03"


def test_removed_selection_snaps_to_latest():
    nav = _nav()
    nav.select("2024-01-01")
    nav.sync(["2024-01-03", "2024-01-07"])
    assert nav.selected == "2024-01-07"


def test_steps_skip_gaps_and_stop_at_boundaries():
    nav = _nav()
    assert nav.previous() == "2024-01-03"
    assert nav.previous() == "2024-01-01"
    assert not nav.has_previous()
    assert nav.previous() == "2024-01-01"

    assert nav.next() == "2024-01-03"
    assert nav.next() == "2024-01-07"
    assert not nav.has_next()
    assert nav.next() == "2024-01-07"


def test_picked_date_without_data_is_kept_until_dates_change():
    nav = _nav()
    nav.select("2024-01-05")
    assert nav.sync(DATES) == "2024-01-05"
    assert not nav.is_latest


def test_steps_from_a_picked_date_land_on_dates_with_data():
    nav = _nav()
    nav.select("2024-01-05")
    assert nav.previous() == "2024-01-03"

    nav.select("2024-01-05")
    assert nav.next() == "2024-01-07"

    nav.select("2023-12-25")
    assert not nav.has_previous()
    assert nav.next() == "2024-01-01"
