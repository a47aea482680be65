"""Unit tests for train and tram departure extraction."""

from interchange_api.models.realtime import FeedMessage
from interchange_api.services.departures.extractor import (
    MAX_DEPARTURES,
    extract_train_departures,
    extract_tram_departures,
    is_city_bound_trip,
    matches_route,
)

from .fixtures.gtfs_rt_fixture import NOW_MS, at_minutes, make_trip

PLATFORMS = ("11200", "11201", "11202")
TARGETS = {"19843", "19854"}
TRAM_STOPS = {"2719"}


def _feed(*trips) -> FeedMessage:
    return FeedMessage(header_timestamp=NOW_MS // 1000, trip_updates=tuple(trips))


def _city_train(trip_id: str, minutes: float, platform: str = "11200"):
    return make_trip(
        trip_id,
        "SDM",
        [
            ("12001", 1, at_minutes(minutes - 2)),
            (platform, 2, at_minutes(minutes)),
            ("19843", 3, at_minutes(minutes + 9)),
        ],
    )


class TestIsCityBoundTrip:
    """Downstream target detection."""

    def test_target_after_interchange_selected(self) -> None:
        trip = make_trip(
            "t1",
            "SDM",
            [("A", 1, 0), ("11200", 2, 0), ("19843", 3, 0), ("C", 4, 0)],
        )
        assert is_city_bound_trip(trip, TARGETS, current_index=1)

    def test_target_before_interchange_rejected(self) -> None:
        trip = make_trip("t1", "SDM", [("19843", 1, 0), ("11200", 2, 0), ("D", 3, 0)])
        assert not is_city_bound_trip(trip, TARGETS, current_index=1)

    def test_equal_sequence_is_not_downstream(self) -> None:
        trip = make_trip("t1", "SDM", [("11200", 2, 0), ("19843", 2, 0)])
        assert not is_city_bound_trip(trip, TARGETS, current_index=0)

    def test_explicit_sequence_beats_list_order(self) -> None:
        # Target listed first but carries a later sequence number
        trip = make_trip("t1", "SDM", [("19843", 7, 0), ("11200", 3, 0)])
        assert is_city_bound_trip(trip, TARGETS, current_index=1)

    def test_no_sequence_numbers_treats_later_stops_as_downstream(self) -> None:
        trip = make_trip("t1", "SDM", [("A", None, 0), ("11200", None, 0), ("19843", None, 0)])
        assert is_city_bound_trip(trip, TARGETS, current_index=1)

    def test_no_sequence_numbers_earlier_stop_not_downstream(self) -> None:
        trip = make_trip("t1", "SDM", [("19843", None, 0), ("11200", None, 0)])
        assert not is_city_bound_trip(trip, TARGETS, current_index=1)

    def test_empty_targets(self) -> None:
        trip = make_trip("t1", "SDM", [("11200", 1, 0), ("19843", 2, 0)])
        assert not is_city_bound_trip(trip, set(), current_index=0)


class TestMatchesRoute:
    def test_accepts_plain_and_prefixed_ids(self) -> None:
        assert matches_route("58", "58")
        assert matches_route("3-58-", "58")
        assert matches_route("aus:vic:vic-03-58:", "58")

    def test_rejects_other_routes(self) -> None:
        assert not matches_route("59", "58")
        assert not matches_route("3-59-", "58")
        assert not matches_route("158", "58")
        assert not matches_route("", "58")

    def test_configured_route_id_substring(self) -> None:
        assert matches_route("3-58-mjp-1", "", target_route_id="3-58-")


class TestExtractTrainDepartures:
    def test_selects_city_bound_trains_on_any_platform(self) -> None:
        feed = _feed(
            _city_train("t1", 10, platform="11200"),
            _city_train("t2", 4, platform="11202"),
        )
        lookup = {"11200": "1", "11202": "3"}.get

        departures = extract_train_departures(feed, PLATFORMS, TARGETS, NOW_MS, lookup)

        assert [d.trip_id for d in departures] == ["t2", "t1"]
        assert departures[0].platform_code == "3"
        assert departures[0].stop_id == "11202"
        assert departures[0].when_epoch_millis == at_minutes(4)

    def test_outbound_train_rejected(self) -> None:
        outbound = make_trip(
            "out",
            "SDM",
            [("19843", 1, at_minutes(-10)), ("11200", 2, at_minutes(5)), ("12001", 3, at_minutes(7))],
        )
        assert extract_train_departures(_feed(outbound), PLATFORMS, TARGETS, NOW_MS) == []

    def test_trip_not_calling_at_interchange_ignored(self) -> None:
        trip = make_trip("t1", "SDM", [("12000", 1, at_minutes(3)), ("19843", 2, at_minutes(8))])
        assert extract_train_departures(_feed(trip), PLATFORMS, TARGETS, NOW_MS) == []

    def test_past_and_untimed_events_dropped(self) -> None:
        past = _city_train("past", -1)
        untimed = make_trip("untimed", "SDM", [("11200", 1, 0), ("19843", 2, at_minutes(9))])
        now_exact = _city_train("now", 0)

        departures = extract_train_departures(
            _feed(past, untimed, now_exact), PLATFORMS, TARGETS, NOW_MS
        )

        assert [d.trip_id for d in departures] == ["now"]

    def test_capped_and_sorted(self) -> None:
        trips = [_city_train(f"t{i:02d}", 30 - i) for i in range(20)]

        departures = extract_train_departures(_feed(*trips), PLATFORMS, TARGETS, NOW_MS)

        assert len(departures) == MAX_DEPARTURES
        times = [d.when_epoch_millis for d in departures]
        assert times == sorted(times)
        assert times[0] == at_minutes(11)

    def test_missing_feed_or_platforms(self) -> None:
        assert extract_train_departures(None, PLATFORMS, TARGETS, NOW_MS) == []
        assert extract_train_departures(_feed(_city_train("t1", 5)), (), TARGETS, NOW_MS) == []


class TestExtractTramDepartures:
    def test_route_and_stop_filter(self) -> None:
        feed = _feed(
            make_trip("r58", "3-58-", [("2700", 1, at_minutes(1)), ("2719", 2, at_minutes(3))]),
            make_trip("r59", "3-59-", [("2719", 5, at_minutes(2))]),
            make_trip("r58-other-stop", "58", [("2800", 1, at_minutes(4))]),
        )

        departures = extract_tram_departures(feed, "58", TRAM_STOPS, NOW_MS, "West Coburg")

        assert [d.trip_id for d in departures] == ["r58"]
        assert departures[0].stop_id == "2719"
        assert departures[0].when_epoch_millis == at_minutes(3)

    def test_headsign_carried_or_defaulted(self) -> None:
        feed = _feed(
            make_trip("a", "58", [("2719", 1, at_minutes(2))], headsign="Toorak"),
            make_trip("b", "58", [("2719", 1, at_minutes(6))]),
        )

        departures = extract_tram_departures(feed, "58", TRAM_STOPS, NOW_MS, "West Coburg")

        assert [d.headsign for d in departures] == ["Toorak", "West Coburg"]

    def test_past_trams_dropped_and_capped(self) -> None:
        trips = [make_trip(f"t{i}", "58", [("2719", 1, at_minutes(i - 3))]) for i in range(20)]

        departures = extract_tram_departures(_feed(*trips), "58", TRAM_STOPS, NOW_MS, "X")

        assert len(departures) == MAX_DEPARTURES
        assert departures[0].when_epoch_millis == NOW_MS
        assert all(d.when_epoch_millis >= NOW_MS for d in departures)
