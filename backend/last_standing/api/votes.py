from flask import Blueprint, jsonify, request

from last_standing.api import json_body
from last_standing.services.games import redemption, validation

votes = Blueprint('votes', __name__)


@votes.route('/start', methods=['POST'])
def start_vote():
    data = json_body()
    result = redemption.start_round(validation.game_code(data.get('game_code')), data.get('host_name'))
    return jsonify(result), 201


@votes.route('/cast', methods=['POST'])
def cast_vote():
    data = json_body()
    return jsonify(redemption.cast_vote(
        validation.positive_id(data.get('round_id'), 'round ID'),
        validation.positive_id(data.get('voter_player_id'), 'voter player ID'),
        validation.positive_id(data.get('voted_for_player_id'), 'candidate player ID'),
    ))


@votes.route('/end', methods=['POST'])
def end_vote():
    data = json_body()
    if data.get('round_id') is None and data.get('game_code'):
        return jsonify(redemption.end_current_round(
            validation.game_code(data.get('game_code')), data.get('host_name')
        ))
    return jsonify(redemption.end_round(
        validation.positive_id(data.get('round_id'), 'round ID'), data.get('host_name')
    ))


@votes.route('/state', methods=['GET'])
def vote_state():
    return jsonify(redemption.vote_state(validation.positive_id(request.args.get('round_id'), 'round ID')))
