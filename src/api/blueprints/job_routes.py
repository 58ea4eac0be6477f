"""
Translation job routes: create a job, query its status and units, list jobs
"""
from flask import Blueprint, request, jsonify

from src.config import TranslationConfig
from src.core.adapters import supported_formats
from src.core.exceptions import UnsupportedFormatError
from src.persistence.models import JobStatus


def create_job_blueprint(service, background, start_translation_job):
    """
    Create and configure the job blueprint

    Args:
        service: Translation service
        background: Background loop running the service
        start_translation_job: Function starting the processing of a job
    """
    bp = Blueprint('jobs', __name__)

    @bp.route('/api/jobs', methods=['POST'])
    def create_job():
        """Upload a document and queue its translation"""
        if 'file' not in request.files:
            return jsonify({"error": "No file part in request"}), 400

        file = request.files['file']
        if not file or file.filename == '':
            return jsonify({"error": "No file selected"}), 400
        if len(file.filename) > 255:
            return jsonify({"error": "Filename too long"}), 400

        data = file.read()
        if len(data) == 0:
            return jsonify({"error": "Empty file not allowed"}), 400

        try:
            config = TranslationConfig.from_web_request(request.form.to_dict())
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        owner_id = request.form.get('owner_id') or 'anonymous'
        try:
            job = background.submit(service.submit(data, file.filename, config, owner_id)).result()
        except UnsupportedFormatError as e:
            return jsonify({"error": e.message, "supported_formats": supported_formats()}), 400
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        start_translation_job(job.id)

        return jsonify({
            "job_id": job.id,
            "status": job.status.value,
            "message": "Translation queued.",
            "config_received": config.to_dict()
        }), 202

    @bp.route('/api/jobs/<job_id>', methods=['GET'])
    def get_job_status(job_id):
        """Get status of a translation job"""
        return jsonify(service.status_view(service.get_job(job_id)))

    @bp.route('/api/jobs/<job_id>/units', methods=['GET'])
    def list_job_units(job_id):
        """List the units of a job and which ones are translated"""
        job = service.get_job(job_id)
        units = background.submit(service.unit_view(job)).result()
        return jsonify({
            "job_id": job.id,
            "units": units,
            "count": len(units)
        })

    @bp.route('/api/jobs', methods=['GET'])
    def list_jobs():
        """List jobs, optionally filtered by status or owner"""
        status = request.args.get('status')
        if status and status not in {s.value for s in JobStatus}:
            return jsonify({"error": f"Unknown status: {status}"}), 400
        try:
            limit = min(int(request.args.get('limit', 50)), 500)
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400

        jobs = service.list_jobs(status=status, owner_id=request.args.get('owner_id'), limit=limit)
        return jsonify({
            "jobs": [service.status_view(job) for job in jobs],
            "count": len(jobs)
        })

    return bp
