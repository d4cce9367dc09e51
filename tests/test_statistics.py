from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from playlight.core.errors import GameNotFound
from playlight.models import Statistics
from playlight.services import statistics
from playlight.services.statistics import (
    get_statistics,
    increment_counter,
    platform_totals,
    record_click,
    record_open,
)

NOW = datetime(2024, 6, 30, 23, 30)


def _row(db, game, day):
    db.expire_all()
    return (
        db.query(Statistics)
        .filter(Statistics.game_id == game.id, Statistics.date == day)
        .one_or_none()
    )


def test_increment_creates_then_updates_row(db, make_user, make_game):
    game = make_game(make_user())
    day = date(2024, 6, 30)

    increment_counter(db, game.id, day, "clicks")
    increment_counter(db, game.id, day, "clicks")
    increment_counter(db, game.id, day, "referrals")
    db.commit()

    row = _row(db, game, day)
    assert (row.clicks, row.referrals, row.playlight_opens) == (2, 1, 0)
    assert db.query(Statistics).count() == 1


def test_increment_rejects_unknown_counter(db, make_user, make_game):
    game = make_game(make_user())
    with pytest.raises(ValueError):
        increment_counter(db, game.id, date(2024, 6, 30), "likes")


def test_record_open_books_utc_day(db, make_user, make_game):
    game = make_game(make_user(), domain="host.example.com")

    record_open(db, "host.example.com", now=NOW)
    record_open(db, "host.example.com", now=NOW + timedelta(hours=1))

    assert _row(db, game, date(2024, 6, 30)).playlight_opens == 1
    assert _row(db, game, date(2024, 7, 1)).playlight_opens == 1


def test_record_open_unknown_domain(db):
    with pytest.raises(GameNotFound):
        record_open(db, "nowhere.example.com", now=NOW)


def test_click_books_click_and_referral(db, make_user, make_game):
    owner = make_user()
    source = make_game(owner, domain="source.example.com")
    target = make_game(owner, domain="target.example.com")

    record_click(db, target.id, "source.example.com", now=NOW)

    day = NOW.date()
    assert _row(db, target, day).clicks == 1
    assert _row(db, target, day).referrals == 0
    assert _row(db, source, day).referrals == 1
    assert _row(db, source, day).clicks == 0


def test_click_with_unknown_reference_writes_nothing(db, make_user, make_game):
    game = make_game(make_user(), domain="source.example.com")

    with pytest.raises(GameNotFound):
        record_click(db, game.id + 100, "source.example.com", now=NOW)
    with pytest.raises(GameNotFound):
        record_click(db, game.id, "missing.example.com", now=NOW)

    assert db.query(Statistics).count() == 0


def test_get_statistics_window_newest_first(db, make_user, make_game, add_stats):
    game = make_game(make_user())
    other = make_game(game.owner)
    today = NOW.date()
    for offset in range(10):
        add_stats(game, today - timedelta(days=offset), clicks=offset)
    add_stats(other, today, clicks=99)

    rows = get_statistics(db, game.id, days=7, now=NOW)

    assert [row.date for row in rows] == [today - timedelta(days=n) for n in range(8)]
    assert all(row.game_id == game.id for row in rows)


def test_platform_totals_cover_last_thirty_days(db, make_user, make_game, add_stats):
    owner = make_user()
    game = make_game(owner, likes=3)
    make_game(owner, likes=2)
    today = NOW.date()
    add_stats(game, today, clicks=2, playlight_opens=5, referrals=1)
    add_stats(game, today - timedelta(days=45), clicks=50)

    totals = platform_totals(db, now=NOW)

    assert totals == {
        "since": (today - timedelta(days=30)).isoformat(),
        "clicks": 2,
        "playlight_opens": 5,
        "referrals": 1,
        "likes": 5,
        "games": 2,
    }


def test_click_endpoint_targets_game_and_referrer(client, db, make_user, make_game):
    owner = make_user()
    five = make_game(owner, domain="five.example.com")
    seven = make_game(owner, domain="seven.example.com")

    resp = client.post(
        "/platform/event/click",
        json={"gameId": seven.id, "sourceDomain": "five.example.com"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    db.expire_all()
    target = db.query(Statistics).filter(Statistics.game_id == seven.id).one()
    source = db.query(Statistics).filter(Statistics.game_id == five.id).one()
    assert (target.clicks, target.referrals) == (1, 0)
    assert (source.clicks, source.referrals) == (0, 1)


def test_click_endpoint_rejects_bad_reference(client, make_user, make_game):
    game = make_game(make_user(), domain="five.example.com")

    resp = client.post(
        "/platform/event/click",
        json={"gameId": game.id + 50, "sourceDomain": "five.example.com"},
    )
    assert resp.status_code == 404

    resp = client.post("/platform/event/click", json={"sourceDomain": "five.example.com"})
    assert resp.status_code == 400


def test_open_endpoint(client, db, make_user, make_game):
    game = make_game(make_user(), domain="embed.example.com")

    assert client.post("/platform/event/open", json={"domain": "embed.example.com"}).status_code == 200
    assert client.post("/platform/event/open", json={"domain": "nope.example.com"}).status_code == 404
    assert client.post("/platform/event/open", json={"domain": "  "}).status_code == 400

    db.expire_all()
    assert db.query(Statistics).filter(Statistics.game_id == game.id).one().playlight_opens == 1


def test_increment_falls_back_to_update_when_insert_races(db, make_user, make_game, add_stats):
    game = make_game(make_user())
    day = date(2024, 6, 30)
    # Another writer created the row after our first update missed it.
    add_stats(game, day, clicks=1)
    real_bump = statistics._bump_counter
    results = []

    def missed_first_update(*args):
        updated = real_bump(*args) if results else 0
        results.append(updated)
        return updated

    with patch.object(statistics, "_bump_counter", side_effect=missed_first_update) as bump:
        increment_counter(db, game.id, day, "clicks")
    db.commit()

    assert bump.call_count == 2
    assert results == [0, 1]
    assert _row(db, game, day).clicks == 2
    assert db.query(Statistics).count() == 1


def test_click_is_rolled_back_when_referral_fails(db, make_user, make_game):
    owner = make_user()
    make_game(owner, domain="source.example.com")
    target = make_game(owner, domain="target.example.com")
    real_increment = statistics.increment_counter
    calls = []

    def flaky_increment(session, game_id, day, counter):
        calls.append(counter)
        if counter == "referrals":
            raise OperationalError("UPDATE statistics", {}, Exception("database is locked"))
        real_increment(session, game_id, day, counter)

    with patch.object(statistics, "increment_counter", side_effect=flaky_increment):
        with pytest.raises(OperationalError):
            record_click(db, target.id, "source.example.com", now=NOW)

    assert calls == ["clicks", "referrals"]
    db.expire_all()
    assert db.query(Statistics).count() == 0
