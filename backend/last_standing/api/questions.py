from flask import Blueprint, jsonify, request

from last_standing.api import json_body
from last_standing.services.games import questions as question_service
from last_standing.services.games import validation

questions = Blueprint('questions', __name__)


@questions.route('/games/<string:game_code>/questions', methods=['GET'])
def list_questions(game_code):
    return jsonify(question_service.list_questions(
        validation.game_code(game_code), request.args.get('host_name')
    ))


@questions.route('/games/<string:game_code>/questions', methods=['POST'])
def add_question(game_code):
    data = json_body()
    question = question_service.add_question(validation.game_code(game_code), data.get('host_name'), data)
    return jsonify(question), 201


@questions.route('/games/<string:game_code>/questions/<int:question_id>/update', methods=['POST'])
def update_question(game_code, question_id):
    data = json_body()
    return jsonify(question_service.update_question(
        validation.game_code(game_code), data.get('host_name'), question_id, data
    ))


@questions.route('/games/<string:game_code>/questions/<int:question_id>/delete', methods=['POST'])
def delete_question(game_code, question_id):
    data = json_body()
    return jsonify(question_service.delete_question(
        validation.game_code(game_code), data.get('host_name'), question_id
    ))


@questions.route('/games/<string:game_code>/questions/import', methods=['POST'])
def import_questions(game_code):
    data = json_body()
    return jsonify(question_service.import_global_questions(
        validation.game_code(game_code), data.get('host_name'), data.get('question_ids')
    ))


@questions.route('/questions/global', methods=['GET'])
def list_global_questions():
    return jsonify({'questions': question_service.list_global_questions(
        request.args.get('category'), request.args.get('difficulty')
    )})


@questions.route('/questions/global', methods=['POST'])
def save_global_question():
    return jsonify(question_service.save_global_question(json_body())), 201
