from flask import Blueprint, jsonify, request

from last_standing.api import json_body
from last_standing.services.games import elimination, flow, media, validation, views

games = Blueprint('games', __name__)


def _host_payload(game_code):
    data = json_body()
    return validation.game_code(game_code), data.get('host_name')


@games.route('/create', methods=['POST'])
def create_game():
    data = json_body()
    game = flow.create_game(
        data.get('host_name'),
        data.get('initial_prize_pot', 0),
        data.get('prize_pot_increment', 0),
        auto_flow=bool(data.get('auto_flow', False)),
    )
    return jsonify(game), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = json_body()
    player = flow.join_game(data.get('game_code'), data.get('username'))
    return jsonify(player), 201


@games.route('/<string:game_code>', methods=['GET'])
def get_game_info(game_code):
    return jsonify(views.game_info(validation.game_code(game_code)))


@games.route('/<string:game_code>/player-state', methods=['GET'])
def get_player_state(game_code):
    username = validation.name(request.args.get('username'), 'Username')
    return jsonify(views.player_state(validation.game_code(game_code), username))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    return jsonify(flow.start_game(*_host_payload(game_code)))


@games.route('/<string:game_code>/reveal', methods=['POST'])
def reveal_answer(game_code):
    return jsonify(flow.reveal_answer(*_host_payload(game_code)))


@games.route('/<string:game_code>/advance', methods=['POST'])
def advance_phase(game_code):
    return jsonify(flow.advance_phase(*_host_payload(game_code)))


@games.route('/<string:game_code>/next-question', methods=['POST'])
def next_question(game_code):
    return jsonify(flow.next_question(*_host_payload(game_code)))


@games.route('/<string:game_code>/end', methods=['POST'])
def end_game(game_code):
    return jsonify(flow.end_game(*_host_payload(game_code)))


@games.route('/<string:game_code>/answer', methods=['POST'])
def submit_answer(game_code):
    data = json_body()
    username = validation.name(data.get('username'), 'Username')
    return jsonify(elimination.submit_answer(validation.game_code(game_code), username, data.get('answer')))


@games.route('/<string:game_code>/sound', methods=['POST'])
def play_sound(game_code):
    data = json_body()
    return jsonify(media.play_sound(validation.game_code(game_code), data.get('host_name'), data.get('sound_id')))


@games.route('/<string:game_code>/sound/clear', methods=['POST'])
def clear_sound(game_code):
    return jsonify(media.clear_sound(validation.game_code(game_code)))


@games.route('/<string:game_code>/media', methods=['POST'])
def show_media(game_code):
    data = json_body()
    return jsonify(media.show_media(validation.game_code(game_code), data.get('host_name'), data.get('media_url')))


@games.route('/<string:game_code>/media/hide', methods=['POST'])
def hide_media(game_code):
    return jsonify(media.hide_media(*_host_payload(game_code)))


@games.route('/<string:game_code>/media/player-hide', methods=['POST'])
def player_hide_media(game_code):
    return jsonify(media.player_hide_media(validation.game_code(game_code)))


@games.route('/<string:game_code>/sequence-video', methods=['POST'])
def set_sequence_video(game_code):
    data = json_body()
    return jsonify(media.set_sequence_video(
        validation.game_code(game_code),
        data.get('host_name'),
        data.get('video_type'),
        data.get('url'),
    ))
