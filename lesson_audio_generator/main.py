"""
Main entry point for the Lesson Audio Generator.

Runs the phases of the pipeline over every language/level found under the
content root: vocabulary list generation, lesson generation, vocabulary repair
with lesson reconstruction, and the catalog update.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .audio import NumpyAudioToolkit
from .catalog import CatalogBuilder
from .config import Config
from .content import ContentScanner, ItemKind, ScopeContent, StatusLedger, WorkStatus
from .errors import ConfigurationError, LessonAudioError, error_handler
from .lessons import LessonGenerator, LessonOutcome
from .models import RepairStatus
from .progress import progress_tracker, ProcessingStage
from .repair import CorruptionDetector, CorruptionStrictness, DetectionThresholds, Reconstructor, VocabularyRepairer
from .storage import BlobStore, LocalBlobStore
from .tts import CostTracker, CostTrackingSynthesizer, RetryingSynthesizer, SpeechSynthesizer
from .tts.openai_synthesizer import OpenAISpeechSynthesizer
from .vocab import VocabularyListGenerator, VocabularyStore


COMMANDS = ["vocab", "generate", "repair", "catalog", "run", "status"]
SYNTHESIS_COMMANDS = {"vocab", "generate", "repair", "run"}


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def build_synthesizer(blob_store: BlobStore, budget_limit: float = None) -> Tuple[SpeechSynthesizer, CostTracker]:
    """Provider client wrapped with budget tracking, then throttling and retries."""
    tracker = CostTracker(blob_store, budget_limit=budget_limit)
    synthesizer = RetryingSynthesizer(CostTrackingSynthesizer(OpenAISpeechSynthesizer(), tracker))
    return synthesizer, tracker


def select_scopes(contents: List[ScopeContent], language: str = None, level: str = None) -> List[ScopeContent]:
    return [
        c for c in contents
        if (language is None or c.scope.language == language)
        and (level is None or c.scope.level == level)
    ]


def load_store(blob_store: BlobStore, content: ScopeContent, extension: str) -> Optional[VocabularyStore]:
    """Load the vocabulary store of a scope; failures are recorded and skip the scope."""
    store = VocabularyStore(blob_store, extension)
    try:
        store.load(content.scope)
    except LessonAudioError as e:
        error_handler.add_exception(e, scope=str(content.scope))
        return None
    return store


def run_vocab_phase(blob_store: BlobStore, contents: List[ScopeContent],
                    synthesizer: SpeechSynthesizer, extension: str) -> None:
    """Phase 1: generate NEW items of vocabulary lists."""
    logger = logging.getLogger(__name__)
    stage = ProcessingStage.VOCABULARY_GENERATION
    errors_before = len(error_handler.errors)
    lists = [(content, vocab_list) for content in contents for vocab_list in content.vocab_lists
             if vocab_list.new_items]
    progress_tracker.start_stage(stage, total_items=len(lists))

    done = 0
    for content in contents:
        scope_lists = [vocab_list for c, vocab_list in lists if c is content]
        if not scope_lists:
            continue
        store = load_store(blob_store, content, extension)
        if store is None:
            continue

        try:
            ledger = StatusLedger(blob_store, content.scope).load()
            generator = VocabularyListGenerator(store, synthesizer, blob_store)
            for vocab_list in scope_lists:
                result = generator.process(vocab_list, ledger)
                progress_tracker.increment_summary_data(vocabulary_entries=len(result.generated))
                for text, error in result.errors.items():
                    error_handler.add_error(error_handler.handle_vocabulary_failure(text, error))
                done += 1
                progress_tracker.update_stage_progress(stage, completed_items=done,
                                                       current_item=f"{content.scope}/{vocab_list.list_id}")
        except LessonAudioError as e:
            logger.error(f"Stopping vocabulary generation for {content.scope}: {e}")
            error_handler.add_exception(e, scope=str(content.scope))

    progress_tracker.complete_stage(stage, success=len(error_handler.errors) == errors_before)


def run_generate_phase(blob_store: BlobStore, scanner: ContentScanner, contents: List[ScopeContent],
                       synthesizer: SpeechSynthesizer, toolkit: NumpyAudioToolkit,
                       retry_failed: bool = True) -> None:
    """Phase 2: generate pending lessons and record their status."""
    logger = logging.getLogger(__name__)
    stage = ProcessingStage.LESSON_GENERATION
    errors_before = len(error_handler.errors)

    work = []
    for content in contents:
        try:
            ledger = StatusLedger(blob_store, content.scope).load()
        except LessonAudioError as e:
            error_handler.add_exception(e, scope=str(content.scope))
            continue
        pending = scanner.pending_lessons(content.scope, ledger, include_failed=retry_failed)
        if pending:
            work.append((content, ledger, pending))

    progress_tracker.start_stage(stage, total_items=sum(len(pending) for _, _, pending in work))
    completed = 0

    for content, ledger, pending in work:
        store = load_store(blob_store, content, toolkit.extension)
        if store is None:
            continue

        def on_progress(number: int, outcome: LessonOutcome) -> None:
            nonlocal completed
            completed += 1
            if outcome.success:
                ledger.set(ItemKind.LESSON, outcome.lesson_id, WorkStatus.DONE)
            else:
                ledger.set(ItemKind.LESSON, outcome.lesson_id, WorkStatus.FAILED, message=str(outcome.error))
                error_handler.add_error(error_handler.handle_lesson_failure(outcome.lesson_id, outcome.error))
            ledger.save()
            progress_tracker.update_stage_progress(stage, completed_items=completed,
                                                   current_item=f"{content.scope}/{outcome.lesson_id}")

        generator = LessonGenerator(store, synthesizer, toolkit, blob_store)
        try:
            result = generator.generate_batch(pending, on_progress=on_progress)
        except LessonAudioError as e:
            logger.error(f"Stopping lesson generation for {content.scope}: {e}")
            error_handler.add_exception(e, scope=str(content.scope))
            continue

        progress_tracker.increment_summary_data(
            lessons_generated=len(result.succeeded),
            lessons_failed=len(result.failed),
            synthesis_calls=result.stats.synthesis_calls,
            calls_saved=result.stats.calls_saved,
            vocabulary_entries=result.stats.new_vocabulary_entries
        )

    progress_tracker.complete_stage(stage, success=len(error_handler.errors) == errors_before)


def run_repair_phase(blob_store: BlobStore, contents: List[ScopeContent],
                     synthesizer: Optional[SpeechSynthesizer], toolkit: NumpyAudioToolkit,
                     strictness: CorruptionStrictness, scan_only: bool = False) -> None:
    """Phases 3 and 4: repair corrupt vocabulary and patch the lessons using it."""
    logger = logging.getLogger(__name__)
    errors_before = len(error_handler.errors)
    thresholds = DetectionThresholds.for_strictness(strictness)
    detector = CorruptionDetector(blob_store, toolkit, thresholds)
    reconstructor = Reconstructor(blob_store, toolkit)

    progress_tracker.start_stage(ProcessingStage.VOCABULARY_REPAIR, total_items=len(contents))
    repaired_by_scope = []
    for number, content in enumerate(contents, start=1):
        store = load_store(blob_store, content, toolkit.extension)
        if store is None:
            continue

        if scan_only:
            corrupt = [r for r in detector.scan(store) if r.is_corrupt]
            for scan in corrupt:
                print(f"   🔍 {content.scope} {scan.entry.filename} \"{scan.entry.text}\": {scan.reason}")
            logger.info(f"{content.scope}: {len(corrupt)} corrupt of {len(store.entries)} fragments")
        else:
            result = VocabularyRepairer(store, detector, synthesizer).repair()
            for failure in result.failures:
                error_handler.add_error(error_handler.handle_unrepaired_entry(failure.filename, failure.text))
            progress_tracker.increment_summary_data(holes_repaired=result.holes_repaired)
            repaired_by_scope.append((content, result.repaired))

        progress_tracker.update_stage_progress(ProcessingStage.VOCABULARY_REPAIR, completed_items=number,
                                               current_item=str(content.scope))
    progress_tracker.complete_stage(ProcessingStage.VOCABULARY_REPAIR, success=len(error_handler.errors) == errors_before)

    if scan_only:
        return

    stage = ProcessingStage.LESSON_RECONSTRUCTION
    progress_tracker.start_stage(stage, total_items=len(repaired_by_scope))
    for number, (content, repaired) in enumerate(repaired_by_scope, start=1):
        reports = reconstructor.reconstruct(repaired, content.scope)
        for report in reports:
            if report.status == RepairStatus.REPAIRED:
                progress_tracker.increment_summary_data(lessons_reconstructed=1)
            else:
                logger.warning(f"Lesson {report.lesson_id} not reconstructed: {report.message}")
        progress_tracker.update_stage_progress(stage, completed_items=number, current_item=str(content.scope))
    progress_tracker.complete_stage(stage, success=True)


def run_catalog_phase(blob_store: BlobStore, scanner: ContentScanner, extension: str) -> None:
    stage = ProcessingStage.CATALOG_UPDATE
    progress_tracker.start_stage(stage)
    catalog = CatalogBuilder(blob_store, extension, scanner).update()
    lessons = sum(len(level['lessons']) for language in catalog['languages'] for level in language['levels'])
    progress_tracker.complete_stage(stage, success=True, details={'lessons': lessons})


def show_status(blob_store: BlobStore, contents: List[ScopeContent]) -> int:
    """Print the ledger summary of every scope."""
    print("📊 CONTENT STATUS")
    print("=" * 50)
    if not contents:
        print(f"No content found under {Config.DATA_ROOT / Config.CONTENT_PREFIX}")
        return 0

    failed = False
    for content in contents:
        try:
            ledger = StatusLedger(blob_store, content.scope).load()
        except LessonAudioError as e:
            print(f"❌ {content.scope}: {e}")
            failed = True
            continue

        lessons = ledger.counts(ItemKind.LESSON, [s.lesson_id for s in content.lessons])
        lists = ledger.counts(ItemKind.VOCAB_LIST, [v.list_id for v in content.vocab_lists])
        print(f"\n🌐 {content.scope}")
        print(f"   🎧 Lessons: {lessons['done']} done, {lessons['pending']} pending, {lessons['failed']} failed")
        print(f"   📝 Vocabulary lists: {lists['done']} done, {lists['pending']} pending, {lists['failed']} failed")
        for source in content.lessons:
            record = ledger.record(ItemKind.LESSON, source.lesson_id)
            if record and record.status == WorkStatus.FAILED:
                print(f"      ❌ {source.lesson_id}: {record.message}")
    print("=" * 50)
    return 1 if failed else 0


def print_error_summary() -> None:
    """Display collected errors and warnings with their first suggestion."""
    if not (error_handler.has_errors() or error_handler.has_warnings()):
        return

    print("\n" + "=" * 50)
    print("⚠️  ISSUES DETECTED")
    print("=" * 50)

    error_summary = error_handler.get_error_summary()

    if error_summary['warning_count'] > 0:
        print(f"⚠️  Warnings: {error_summary['warning_count']}")
        for warning in error_summary['warnings']:
            print(f"   • {warning['message']}")
            if warning['suggested_actions']:
                print(f"     Suggestion: {warning['suggested_actions'][0]}")

    if error_summary['error_count'] > 0:
        print(f"❌ Errors: {error_summary['error_count']}")
        for error in error_summary['errors']:
            print(f"   • {error['message']}")
            if error['suggested_actions']:
                print(f"     Suggestion: {error['suggested_actions'][0]}")

    print("=" * 50)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lesson-audio",
        description="Generate spoken lesson audio with reusable vocabulary fragments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  vocab     Synthesize NEW items of vocabulary lists
  generate  Generate audio and timing manifests for pending lessons
  repair    Regenerate corrupt vocabulary and patch the lessons that use it
  catalog   Rebuild manifest.json listing available lessons
  run       vocab, generate, repair and catalog in order
  status    Show lesson and vocabulary list status per language/level

Examples:
  %(prog)s run
  %(prog)s generate --language french --level level1
  %(prog)s repair --scan-only --strictness strict
  %(prog)s --root /data/lessons status

Content layout:
  lessons-content/<language>/<level>/lessons/<lessonId>.txt
  lessons-content/<language>/<level>/vocab-lists/<listId>.txt
        """
    )

    parser.add_argument(
        "command",
        choices=COMMANDS,
        help="Operation to run"
    )

    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Data root holding lessons-content/ and lessons-audio/ (default: LESSON_AUDIO_ROOT or ./data)"
    )

    parser.add_argument(
        "--language",
        default=None,
        help="Only process this language id"
    )

    parser.add_argument(
        "--level",
        default=None,
        help="Only process this level id"
    )

    parser.add_argument(
        "--strictness",
        choices=[s.value for s in CorruptionStrictness],
        default=CorruptionStrictness.NORMAL.value,
        help="How eagerly vocabulary fragments are flagged as corrupt"
    )

    parser.add_argument(
        "--scan-only",
        action="store_true",
        help="With repair: report corrupt fragments without regenerating them"
    )

    parser.add_argument(
        "--skip-failed",
        action="store_true",
        help="With generate: do not retry lessons that failed before"
    )

    parser.add_argument(
        "--budget",
        type=float,
        default=None,
        help="Synthesis budget limit in USD (0 disables the limit)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


def main(argv: List[str] = None) -> int:
    """Command line entry point."""
    args = create_parser().parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.root is not None:
        Config.DATA_ROOT = args.root

    needs_synthesis = args.command in SYNTHESIS_COMMANDS and not (args.command == "repair" and args.scan_only)
    try:
        Config.validate(require_api_key=needs_synthesis)
    except ConfigurationError as e:
        print(f"❌ {e}")
        for action in e.processing_error.suggested_actions:
            print(f"   • {action}")
        return 1

    Config.ensure_directories()
    blob_store = LocalBlobStore(Config.DATA_ROOT)
    scanner = ContentScanner(blob_store)
    contents = select_scopes(scanner.scan(), args.language, args.level)

    if args.command == "status":
        return show_status(blob_store, contents)

    error_handler.clear_errors()
    progress_tracker.reset()
    progress_tracker.start_pipeline()

    toolkit = NumpyAudioToolkit()
    synthesizer, tracker = (None, None)
    if needs_synthesis:
        synthesizer, tracker = build_synthesizer(blob_store, args.budget)

    logger.info(f"Data root: {Config.DATA_ROOT}")
    logger.info(f"Scopes: {', '.join(str(c.scope) for c in contents) or 'none'}")

    if args.command in ("vocab", "run"):
        run_vocab_phase(blob_store, contents, synthesizer, toolkit.extension)

    if args.command in ("generate", "run"):
        run_generate_phase(blob_store, scanner, contents, synthesizer, toolkit,
                           retry_failed=not args.skip_failed)

    if args.command in ("repair", "run"):
        run_repair_phase(blob_store, contents, synthesizer, toolkit,
                         CorruptionStrictness(args.strictness), scan_only=args.scan_only)

    if args.command in ("catalog", "run"):
        run_catalog_phase(blob_store, scanner, toolkit.extension)

    if tracker is not None:
        progress_tracker.update_summary_data(estimated_cost=tracker.get_summary()['session_spent'])

    success = not error_handler.has_errors()
    progress_tracker.complete_pipeline(success)
    print_error_summary()

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
