"""
Analytical Query Tests
======================
Statement parameters and result shapes over a fake store. The SQL itself
runs against PostgreSQL in test_integration_db.py.
"""

import pytest

from listen_etl.analytics import queries
from listen_etl.analytics.queries import QueryResult
from conftest import FakeDatabaseManager


def last_params(db):
    return db.statements[-1][1]


def test_artist_fanboys_passes_artist_and_top_n_twice(fake_db):
    queries.artist_fanboys(fake_db)
    assert last_params(fake_db) == ('queen', 3, 3)

    queries.artist_fanboys(fake_db, artist='Muse', top_n=5)
    assert last_params(fake_db) == ('Muse', 5, 5)


def test_artist_fanboys_placeholders_match_params(fake_db):
    queries.artist_fanboys(fake_db)
    query, params = fake_db.statements[-1]
    assert query.count('%s') == len(params)
    assert 'HAVING COUNT(DISTINCT hits.track_id) = %s' in query


@pytest.mark.parametrize('func', [queries.most_popular_tracks, queries.users_with_most_unique_tracks])
def test_limit_queries_pass_limit(fake_db, func):
    func(fake_db)
    assert last_params(fake_db) == (10,)

    func(fake_db, limit=3)
    assert last_params(fake_db) == (3,)
    assert fake_db.statements[-1][0].count('%s') == 1


@pytest.mark.parametrize('func', [queries.most_popular_artist, queries.monthly_listen_activities])
def test_fixed_queries_take_no_params(fake_db, func):
    func(fake_db)
    query, params = fake_db.statements[-1]
    assert params is None
    assert '%s' not in query


def test_most_popular_artist_is_ordered_by_listens(fake_db):
    queries.most_popular_artist(fake_db)
    query = fake_db.statements[-1][0]
    assert 'ORDER BY listen_counter DESC' in query
    assert 'LIMIT 1' in query


def test_monthly_query_orders_by_month_number(fake_db):
    queries.monthly_listen_activities(fake_db)
    assert 'ORDER BY month ASC' in fake_db.statements[-1][0]


def test_result_carries_columns_and_rows():
    db = FakeDatabaseManager(query_results={
        'popularity_counter': (
            ['track_name', 'artist_name', 'popularity_counter'],
            [['Bohemian Rhapsody', 'Queen', 2], ['Yellow', 'Coldplay', 1]],
        ),
    })

    result = queries.most_popular_tracks(db, limit=2)

    assert result.name == 'most_popular_tracks'
    assert result.row_count == 2
    assert result.rows[0] == ('Bohemian Rhapsody', 'Queen', 2)
    assert result.to_records()[1] == {'track_name': 'Yellow', 'artist_name': 'Coldplay', 'popularity_counter': 1}


def test_count_rows_returns_first_cell():
    db = FakeDatabaseManager(query_results={'SELECT COUNT(*) FROM tracks': (['count'], [(42,)])})

    assert queries.count_rows(db, 'tracks') == 42
    assert db.statements[-1][0] == 'SELECT COUNT(*) FROM tracks'


def test_count_rows_empty_result_is_zero(fake_db):
    assert queries.count_rows(fake_db, 'listen_activities') == 0


def test_count_rows_rejects_unknown_table(fake_db):
    with pytest.raises(ValueError, match='Unknown table'):
        queries.count_rows(fake_db, 'users; DROP TABLE tracks')
    assert fake_db.statements == []


def test_query_result_defaults():
    result = QueryResult('artist_fanboys', ['hits_listened', 'user_id'])
    assert result.rows == []
    assert result.to_records() == []
