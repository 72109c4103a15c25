"""
LoggingService tests: app_logs persistence, request context and cleanup.
"""

import sqlite3
from datetime import datetime, timedelta, timezone

from atelier.core import LoggingService, db_log
from conftest import PASSWORD, register


def test_log_writes_to_app_logs(app_ctx):
    LoggingService.info('projects', 'Created project', {'id': 'abc'}, user_id=3)

    entry = LoggingService.get_recent_logs(limit=1)[0]
    assert entry['level'] == 'INFO'
    assert entry['source'] == 'projects'
    assert entry['message'] == 'Created project'
    assert '"id": "abc"' in entry['details']
    assert entry['user_id'] == '3'


def test_get_recent_logs_filters_by_source(app_ctx):
    db_log('warning', 'storage', 'Slow upload')
    LoggingService.error('projects', 'Boom')

    entries = LoggingService.get_recent_logs(source='storage')
    assert [e['message'] for e in entries] == ['Slow upload']
    assert entries[0]['level'] == 'WARNING'


def test_log_error_with_traceback(app_ctx):
    try:
        raise ValueError('bad thing')
    except ValueError as e:
        LoggingService.log_error_with_traceback('projects', e, {'id': 'x'})

    entry = LoggingService.get_recent_logs(source='projects')[0]
    assert entry['level'] == 'ERROR'
    assert 'ValueError' in entry['message']
    assert 'Traceback' in entry['details']


def test_request_context_is_recorded(app):
    with app.test_request_context('/api/projects', headers={'X-Forwarded-For': '1.2.3.4, 10.0.0.1'}):
        LoggingService.log_security_event('Suspicious request')
        entry = LoggingService.get_recent_logs(limit=1)[0]
    assert entry['source'] == 'security'
    assert entry['ip_address'] == '1.2.3.4'
    assert entry['request_path'] == '/api/projects'


def test_cleanup_old_logs(app_ctx):
    old = (datetime.now(timezone.utc) - timedelta(days=45)).isoformat()
    LoggingService.info('system', 'fresh')
    conn = sqlite3.connect(app_ctx.config['LOGS_DB'])
    conn.execute(
        "INSERT INTO app_logs (timestamp, level, source, message) VALUES (?, 'INFO', 'system', 'stale')",
        (old,)
    )
    conn.commit()
    conn.close()

    assert LoggingService.cleanup_old_logs(days_to_keep=30) == 1
    messages = [e['message'] for e in LoggingService.get_recent_logs(limit=10)]
    assert 'stale' not in messages
    assert 'fresh' in messages


def test_logging_survives_unwritable_database(app_ctx, tmp_path):
    app_ctx.config['LOGS_DB'] = str(tmp_path)  # a directory, not a file
    LoggingService.info('system', 'still fine')


def test_error_feed_shows_warnings_and_errors(app, client):
    register(client)
    with app.app_context():
        LoggingService.info('projects', 'routine')
        LoggingService.error('storage', 'Failed to delete image')

    body = client.get('/api/ops/errors').get_json()
    messages = [e['message'] for e in body['items']]
    assert 'Failed to delete image' in messages
    assert 'routine' not in messages
    assert body['count'] == len(body['items'])


def test_error_feed_limit_counts_only_warnings_and_errors(app, client):
    register(client)
    with app.app_context():
        LoggingService.error('storage', 'first failure')
        LoggingService.error('storage', 'second failure')
        for i in range(5):
            LoggingService.info('projects', f'routine {i}')

    body = client.get('/api/ops/errors?limit=2').get_json()
    assert [e['message'] for e in body['items']] == ['second failure', 'first failure']
    assert body['count'] == 2


def test_error_feed_for_editors_shows_only_their_entries(app, client):
    register(client)
    client.post('/api/auth/logout')
    client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'Wrong1234'})

    mallory = register(client, username='mallory', email='mallory@example.com').get_json()['user']
    with app.app_context():
        LoggingService.warning('projects', 'Image left in storage', user_id=mallory['id'])

    body = client.get('/api/ops/errors').get_json()
    assert [e['message'] for e in body['items']] == ['Image left in storage']
    assert all('alice@example.com' not in (e['details'] or '') for e in body['items'])


def test_error_feed_for_admin_shows_everyone(app, client):
    register(client)
    client.post('/api/auth/logout')
    client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'Wrong1234'})
    mallory = register(client, username='mallory', email='mallory@example.com').get_json()['user']
    with app.app_context():
        LoggingService.warning('projects', 'Image left in storage', user_id=mallory['id'])

    client.post('/api/auth/logout')
    client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': PASSWORD})

    messages = [e['message'] for e in client.get('/api/ops/errors').get_json()['items']]
    assert 'Failed login' in messages
    assert 'Image left in storage' in messages
