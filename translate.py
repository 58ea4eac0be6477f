"""
Command-line interface for EPUB and PDF translation
"""
import os
import sys
import json
import argparse
import asyncio

from src.config import (
    BATCH_MODEL, DIRECT_PROVIDER, GEMINI_API_KEY, OPENAI_API_KEY,
    DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE, DEFAULT_STYLE,
    TRANSLATION_STYLES, TRANSLATION_MODES, TranslationConfig
)
from src.core.exceptions import TranslationError
from src.core.translation_service import TranslationService
from src.persistence.models import JobStatus
from src.utils.file_utils import default_output_path, get_unique_output_path
from src.utils.unified_logger import setup_cli_logger, LogType

#: Seconds between two job checks while the CLI waits for a batch
WAIT_CHECK_INTERVAL = 10.0


async def save_artifact(service, job, output_path):
    data = await service.artifact_store.read(job.artifact_key)
    with open(output_path, 'wb') as f:
        f.write(data)


async def run_translation(service, args, config, logger):
    with open(args.input, 'rb') as f:
        data = f.read()

    job = await service.translate(data, os.path.basename(args.input), config)
    if not job.status.is_terminal:
        logger.info(f"Batch {job.batch_id} submitted for job {job.id}. Waiting for the backend "
                    f"(safe to interrupt, continue later with --resume)")
    job = await service.wait_for(job.id, check_interval=WAIT_CHECK_INTERVAL)

    if job.status != JobStatus.COMPLETED:
        logger.error(f"Translation failed: {job.error}", LogType.ERROR_DETAIL,
                     {'details': job.error, 'job_id': job.id})
        return 1

    await save_artifact(service, job, args.output)
    logger.info("Translation Completed Successfully", LogType.JOB_END,
                {'status': job.status.value, 'artifact_key': args.output})
    return 0


async def run_resume(service, logger):
    resumed = service.resume()
    job_ids = resumed['polling'] + resumed['restarted']
    if not job_ids:
        logger.info("No interrupted jobs to resume")
        return 0

    logger.info(f"Waiting for {len(job_ids)} resumed job(s)")
    exit_code = 0
    for job_id in job_ids:
        job = await service.wait_for(job_id, check_interval=WAIT_CHECK_INTERVAL)
        if job.status == JobStatus.COMPLETED:
            logger.info(f"Job {job_id} completed: {job.file_name} -> {job.artifact_key}")
        else:
            logger.error(f"Job {job_id} failed: {job.error}")
            exit_code = 1
    return exit_code


async def main(args, config, logger):
    service = TranslationService.create(config)
    try:
        if args.status:
            print(json.dumps(service.status_view(service.get_job(args.status)), indent=2))
            return 0
        if args.resume:
            return await run_resume(service, logger)
        return await run_translation(service, args, config, logger)
    finally:
        await service.shutdown()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Translate an EPUB or PDF file using an LLM.")
    parser.add_argument("-i", "--input", help="Path to the input file (EPUB or PDF).")
    parser.add_argument("-o", "--output", default=None, help="Path to the output file. If not specified, uses input filename with suffix.")
    parser.add_argument("-sl", "--source_lang", default=DEFAULT_SOURCE_LANGUAGE, help=f"Source language (default: {DEFAULT_SOURCE_LANGUAGE}).")
    parser.add_argument("-tl", "--target_lang", default=DEFAULT_TARGET_LANGUAGE, help=f"Target language (default: {DEFAULT_TARGET_LANGUAGE}).")
    parser.add_argument("--style", default=DEFAULT_STYLE, choices=TRANSLATION_STYLES, help=f"Translation style (default: {DEFAULT_STYLE}).")
    parser.add_argument("--mode", default="batch", choices=TRANSLATION_MODES, help="Batch API with direct fallback, or direct per-unit requests (default: batch).")
    parser.add_argument("-m", "--model", default=BATCH_MODEL, help=f"Batch model (default: {BATCH_MODEL}).")
    parser.add_argument("--provider", default=DIRECT_PROVIDER, choices=["gemini", "openai"], help=f"Provider for direct translation (default: {DIRECT_PROVIDER}).")
    parser.add_argument("--gemini_api_key", default=GEMINI_API_KEY, help="Google Gemini API key.")
    parser.add_argument("--openai_api_key", default=OPENAI_API_KEY, help="OpenAI API key (batch backend, and direct with --provider openai).")
    parser.add_argument("--resume", action="store_true", help="Resume jobs interrupted by a previous run and wait for them.")
    parser.add_argument("--status", metavar="JOB_ID", default=None, help="Print the status of a job and exit.")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")

    args = parser.parse_args()

    if not (args.input or args.resume or args.status):
        parser.error("-i/--input is required unless --resume or --status is given")
    if args.input and not os.path.isfile(args.input):
        parser.error(f"Input file not found: {args.input}")

    if args.input and args.output is None:
        args.output = default_output_path(args.input, args.target_lang)
    if args.output:
        # Ensure output path is unique (add number suffix if file exists)
        args.output = get_unique_output_path(args.output)

    # Setup unified logger
    logger = setup_cli_logger(enable_colors=not args.no_color)

    if args.mode == "batch" and not args.openai_api_key:
        logger.warning("No OpenAI API key: the batch submission will fail and fall back to direct translation")

    try:
        config = TranslationConfig.from_cli_args(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        sys.exit(asyncio.run(main(args, config, logger)))
    except KeyboardInterrupt:
        logger.warning("Interrupted. Batch jobs keep running on the backend, continue with --resume")
        sys.exit(130)
    except TranslationError as e:
        logger.error(f"Translation failed: {e.message}", LogType.ERROR_DETAIL, {
            'details': str(e),
            'input_file': args.input
        })
        sys.exit(1)
