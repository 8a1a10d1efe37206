import logging

from flask import Flask, request, jsonify
from flask_cors import CORS

from Config import load_config
from Simulator import Simulator

logger = logging.getLogger(__name__)


def create_app(config=None):
    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.config["SIMULATOR"] = config if config is not None else load_config()

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/simulate', methods=['POST'])
    def simulate():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Expected a JSON object'}), 400

        program = data.get('program')
        instructions = data.get('instructions')
        if program is None and instructions is None:
            return jsonify({'error': "Provide 'program' or 'instructions'"}), 400
        if instructions is not None and not (
                isinstance(instructions, list) and all(isinstance(i, str) for i in instructions)):
            return jsonify({'error': "'instructions' must be a list of strings"}), 400
        if program is not None and not isinstance(program, str):
            return jsonify({'error': "'program' must be a string"}), 400
        latencies = data.get('latencies')
        if latencies is not None and not isinstance(latencies, dict):
            return jsonify({'error': "'latencies' must be an object"}), 400

        try:
            sim = Simulator(app.config["SIMULATOR"], latencies=latencies)
            if program is not None:
                sim.load_program(program)
            else:
                sim.load_instructions(instructions)
            sim.run()
        except ValueError as e:  # PipelineInputError or a bad latency override
            logger.info("Rejected simulation request: %s", e)
            return jsonify({'error': str(e)}), 400

        return jsonify(sim.result.to_dict())

    return app


if __name__ == '__main__':
    config = load_config()
    logging.basicConfig(level=config["logging"]["level"])
    server = config["server"]
    create_app(config).run(host=server["host"], port=server["port"], debug=server["debug"])
