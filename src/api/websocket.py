"""
WebSocket handlers for real-time job updates
"""
from flask import request
from flask_socketio import emit

from src.utils.unified_logger import get_logger


def configure_websocket_handlers(socketio, service):
    """Configure WebSocket event handlers"""

    @socketio.on('connect')
    def handle_websocket_connect():
        get_logger().debug(f"WebSocket client connected: {request.sid}")
        emit('connected', {'message': 'Connected to translation server via WebSocket'})

    @socketio.on('disconnect')
    def handle_websocket_disconnect():
        get_logger().debug(f"WebSocket client disconnected: {request.sid}")

    @socketio.on('job_status')
    def handle_job_status(data):
        """Send the current status of one job back to the asking client"""
        job_id = (data or {}).get('job_id')
        job = service.job_store.get(job_id) if job_id else None
        if job is None:
            emit('job_update', {'job_id': job_id, 'error': 'Translation job not found'})
            return
        emit('job_update', dict(service.status_view(job), job_id=job.id))


def emit_update(socketio, job_id, data_to_emit):
    """
    Emit a WebSocket update for a job

    Args:
        socketio: SocketIO instance
        job_id (str): Translation job ID
        data_to_emit (dict): Status view of the job
    """
    data_to_emit['job_id'] = job_id
    try:
        socketio.emit('job_update', data_to_emit, namespace='/')
    except Exception as e:
        get_logger().warning(f"WebSocket emission error for {job_id}: {e}")
