import time

from rps_arena import socketio

NS = '/ws'


def _events(test_client, name):
    return [pkt['args'][0] for pkt in test_client.get_received(NS) if pkt['name'] == name]


def _connect(flask_app, name):
    test_client = socketio.test_client(flask_app, namespace=NS)
    sid = _events(test_client, 'connected')[0]['id']
    test_client.emit('joinLobby', {'name': name, 'colorPref': 'green'}, namespace=NS)
    test_client.get_received(NS)
    return test_client, sid


def _start_match(flask_app):
    alice, alice_id = _connect(flask_app, 'Alice')
    bob, bob_id = _connect(flask_app, 'Bob')
    alice.emit('setQueueStatus', {'wantsMatch': True}, namespace=NS)
    bob.emit('setQueueStatus', {'wantsMatch': True}, namespace=NS)
    start = _events(alice, 'match_start')[0]
    bob.get_received(NS)
    return alice, alice_id, bob, bob_id, start['matchId']


def test_socket_connect_receives_identity_and_lobby(sio_client):
    if not sio_client.is_connected(NS):
        sio_client.connect(namespace=NS)
    assert sio_client.is_connected(NS)

    received = sio_client.get_received(NS)
    names = [pkt['name'] for pkt in received]
    assert 'connected' in names
    assert 'lobbyState' in names


def test_two_players_are_paired_and_play_a_round(flask_app):
    alice, alice_id = _connect(flask_app, 'Alice')
    bob, bob_id = _connect(flask_app, 'Bob')

    alice.emit('setQueueStatus', {'wantsMatch': True}, namespace=NS)
    bob.emit('setQueueStatus', {'wantsMatch': True}, namespace=NS)
    received = bob.get_received(NS)
    starts = [pkt['args'][0] for pkt in received if pkt['name'] == 'match_start']
    turns = [pkt['args'][0] for pkt in received if pkt['name'] == 'turnUpdate']
    assert len(starts) == 1
    assert starts[0]['winsRequired'] == 2
    assert [p['id'] for p in starts[0]['players']] == [alice_id, bob_id]
    assert turns[0]['round'] == 1
    match_id = starts[0]['matchId']
    alice.get_received(NS)

    alice.emit('playerMove', {'matchId': match_id, 'move': 'rock'}, namespace=NS)
    bob.emit('playerMove', {'matchId': match_id, 'move': 'scissors'}, namespace=NS)
    result = _events(alice, 'round_result')[0]
    assert result['winnerId'] == alice_id
    assert result['scores'] == {alice_id: 1, bob_id: 0}
    assert result['reason'] == 'moves'


def test_full_match_returns_players_to_lobby(flask_app, client):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    for _ in range(2):
        alice.emit('playerMove', {'matchId': match_id, 'move': 'paper'}, namespace=NS)
        bob.emit('playerMove', {'matchId': match_id, 'move': 'rock'}, namespace=NS)

    received = bob.get_received(NS)
    ends = [pkt['args'][0] for pkt in received if pkt['name'] == 'game_end']
    assert ends[0]['winnerId'] == alice_id
    assert ends[0]['finalScores'] == {alice_id: 2, bob_id: 0}
    # Back in the lobby scope: the post-match snapshot reaches both players
    lobby = [pkt['args'][0] for pkt in received if pkt['name'] == 'lobbyState'][-1]
    assert lobby['activeMatches'] == []
    records = {p['id']: (p['wins'], p['losses']) for p in lobby['spectators']}
    assert records == {alice_id: (1, 0), bob_id: (0, 1)}

    assert client.get(f'/api/matches/{match_id}').status_code == 404


def test_invalid_intentions_are_silent(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    alice.emit('playerMove', {'matchId': match_id, 'move': 'lizard'}, namespace=NS)
    alice.emit('playerMove', {'matchId': 'NOPE00', 'move': 'rock'}, namespace=NS)
    alice.emit('playerMove', 'garbage', namespace=NS)
    alice.emit('spectateMatch', {'matchId': match_id}, namespace=NS)
    alice.emit('chatMessage', {'matchId': match_id, 'text': ''}, namespace=NS)
    assert alice.get_received(NS) == []
    assert bob.get_received(NS) == []


def test_chat_reaches_match_scope_only(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    carol, carol_id = _connect(flask_app, 'Carol')

    alice.emit('chatMessage', {'matchId': match_id, 'text': 'gl hf'}, namespace=NS)
    messages = _events(bob, 'chatMessage')
    assert messages[0]['fromId'] == alice_id
    assert messages[0]['fromName'] == 'Alice'
    assert messages[0]['text'] == 'gl hf'
    assert _events(carol, 'chatMessage') == []


def test_spectator_gets_snapshot_and_round_results(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    carol, carol_id = _connect(flask_app, 'Carol')

    carol.emit('spectateMatch', {'matchId': match_id}, namespace=NS)
    snapshot = _events(carol, 'match_snapshot')[0]
    assert snapshot['matchId'] == match_id
    assert snapshot['round'] == 1

    alice.emit('playerMove', {'matchId': match_id, 'move': 'scissors'}, namespace=NS)
    bob.emit('playerMove', {'matchId': match_id, 'move': 'paper'}, namespace=NS)
    results = _events(carol, 'round_result')
    assert results[0]['revealedMoves'] == {alice_id: 'scissors', bob_id: 'paper'}

    carol.emit('leaveSpectate', {}, namespace=NS)
    alice.emit('playerMove', {'matchId': match_id, 'move': 'rock'}, namespace=NS)
    bob.emit('playerMove', {'matchId': match_id, 'move': 'rock'}, namespace=NS)
    assert _events(carol, 'round_result') == []


def test_disconnect_forfeits_match(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    bob.disconnect(namespace=NS)
    received = alice.get_received(NS)
    results = [pkt['args'][0] for pkt in received if pkt['name'] == 'round_result']
    ends = [pkt['args'][0] for pkt in received if pkt['name'] == 'game_end']
    assert results[0]['reason'] == 'disconnect'
    assert results[0]['winnerId'] == alice_id
    assert ends[0]['winnerId'] == alice_id


def test_leave_match_and_rematch(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    alice.emit('leaveMatch', {}, namespace=NS)
    assert _events(bob, 'game_end')[0]['reason'] == 'forfeit'

    alice.emit('requestRematch', {}, namespace=NS)
    bob.emit('requestRematch', {}, namespace=NS)
    starts = _events(alice, 'match_start')
    assert len(starts) == 1
    assert starts[0]['matchId'] != match_id


def test_heartbeat_is_acknowledged(sio_client):
    sio_client.get_received(NS)
    sio_client.emit('heartbeat', {'timestamp': 42}, namespace=NS)
    acks = _events(sio_client, 'heartbeat_ack')
    assert acks[0]['clientTimestamp'] == 42
    assert isinstance(acks[0]['serverTime'], int)


def test_rejoining_a_match_scope_receives_its_chat(flask_app):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    carol, carol_id = _connect(flask_app, 'Carol')

    carol.emit('spectateMatch', {'matchId': match_id}, namespace=NS)
    carol.emit('leaveSpectate', {}, namespace=NS)
    carol.emit('spectateMatch', {'matchId': match_id}, namespace=NS)
    carol.get_received(NS)

    alice.emit('chatMessage', {'matchId': match_id, 'text': 'welcome back'}, namespace=NS)
    assert [m['text'] for m in _events(carol, 'chatMessage')] == ['welcome back']


def test_liveness_sweep_disconnects_through_transport(flask_app, monkeypatch):
    alice, alice_id, bob, bob_id, match_id = _start_match(flask_app)
    arena = flask_app.extensions['arena']
    later = time.time() + 60
    monkeypatch.setattr(arena, 'heartbeat_stale', 1.0)
    monkeypatch.setattr(arena, 'clock', lambda: later)

    arena.sweep_liveness()

    assert not alice.is_connected(NS)
    assert not bob.is_connected(NS)
    assert arena.matches.get(match_id) is None
    assert len(arena.registry) == 0
    assert arena.stats.matches_completed == 1
