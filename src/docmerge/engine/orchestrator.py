"""
docmerge Part Orchestrator

Drives normalize -> parse -> render over every present part of a document
and aggregates the per-part reports.

Key features:
- Parts are processed in canonical order (body, headers, footers)
- Each part collects its own diagnostics; nothing mutable is shared
- Optional thread-pool fan-out over parts (read-only context)
- Only two outcomes fail the whole document: no parts to process, or the
  part writer rejecting output
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Union, runtime_checkable

from ..config.settings import EngineSettings
from ..exceptions import DocMergeError, NoPartsProcessed, PartWriteFailure
from ..models import (
    CollectingSink,
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    MergeContext,
    MergeReport,
    MergeResult,
    PartName,
    PartReport,
    Severity,
    TemplateDocument,
)
from .normalizer import normalize
from .renderer import Renderer
from .tag_parser import parse_template

logger = logging.getLogger(__name__)

DocumentInput = Union[TemplateDocument, Mapping[str, str]]

_MAX_WORKERS = 7


@runtime_checkable
class PartWriter(Protocol):
    """Receives each transformed part (e.g. writes it back into a container)."""

    def write(self, part_name: str, markup: str) -> None:
        ...


@dataclass
class MergeEngine:
    """
    Merges a context into every part of a template document.

    Usage:
        engine = MergeEngine()
        result = engine.merge(context, {"body": body_xml, "footer-1": footer_xml})

        if result.success:
            body = result.parts["body"]
        else:
            print(result.error["code"])

    Attributes:
        settings: Engine settings
        sink: Receives every diagnostic as it is raised (e.g. LoggingSink)
    """

    settings: EngineSettings = field(default_factory=EngineSettings)
    sink: Optional[DiagnosticsSink] = None

    def merge_part(
        self,
        part: Union[PartName, str],
        markup: str,
        context: Mapping[str, str],
    ) -> tuple[str, PartReport]:
        """Merge one part; never raises for malformed template content."""
        name = part.value if isinstance(part, PartName) else str(part)
        collector = CollectingSink(part=name, forward=self.sink)

        normalized = normalize(markup, self.settings, collector)
        tokens = parse_template(normalized.text, self.settings, collector)
        rendered = Renderer(self.settings, collector).render(tokens, context)

        report = PartReport(
            part=name,
            variables_substituted=rendered.variables_substituted,
            conditionals_resolved=rendered.conditionals_resolved,
            tokens_repaired=normalized.repaired,
            unresolved_identifiers=list(rendered.unresolved_identifiers),
            diagnostics=list(collector.diagnostics),
        )
        logger.debug(
            "Merged %s: %d variables, %d conditionals, %d unresolved",
            name,
            report.variables_substituted,
            report.conditionals_resolved,
            len(report.unresolved_identifiers),
        )
        return rendered.text, report

    def merge(
        self,
        context: Mapping[str, str],
        document: DocumentInput,
        writer: Optional[PartWriter] = None,
    ) -> MergeResult:
        """
        Merge every present part.

        Args:
            context: MergeContext (plain mappings are wrapped)
            document: TemplateDocument or part name -> markup mapping
            writer: Optional PartWriter receiving each transformed part

        Returns:
            MergeResult; success is False for NoPartsProcessed and
            PartWriteFailure

        Raises:
            DocMergeError: Only in strict mode, for the first
                non-informational diagnostic
        """
        if not isinstance(context, MergeContext):
            context = MergeContext(context)
        if not isinstance(document, TemplateDocument):
            document = TemplateDocument(document)

        doc_sink = CollectingSink(forward=self.sink)
        report = MergeReport(diagnostics=doc_sink.diagnostics)

        for missing in document.missing_parts():
            doc_sink.emit(Diagnostic(
                kind=DiagnosticKind.PART_MISSING,
                message=f"Part {missing.value} not present; skipped",
                part=missing.value,
            ))

        if len(document) == 0:
            error = NoPartsProcessed(message="Document contains no template parts")
            return self._fail(doc_sink, report, {}, error, DiagnosticKind.NO_PARTS_PROCESSED)

        parts = list(document.items())
        if self.settings.parallel_parts and len(parts) > 1:
            with ThreadPoolExecutor(max_workers=min(len(parts), _MAX_WORKERS)) as pool:
                outcomes = list(pool.map(
                    lambda item: self.merge_part(item[0], item[1], context), parts
                ))
        else:
            outcomes = [self.merge_part(part, markup, context) for part, markup in parts]

        outputs: dict[str, str] = {}
        for (part, _), (text, part_report) in zip(parts, outcomes):
            outputs[part.value] = text
            report.parts.append(part_report)

        if self.settings.strict:
            self._raise_first_problem(report)

        if writer is not None:
            for name, text in outputs.items():
                try:
                    writer.write(name, text)
                except Exception as e:
                    error = PartWriteFailure(
                        message=f"Writer rejected part {name}: {e}",
                        details={"error_type": type(e).__name__},
                        part=name,
                    )
                    return self._fail(
                        doc_sink, report, outputs, error, DiagnosticKind.PART_WRITE_FAILURE
                    )

        logger.info(
            "Merged %d part(s): %d variables substituted, %d conditionals resolved",
            len(outputs),
            report.variables_substituted,
            report.conditionals_resolved,
        )
        return MergeResult(success=True, parts=outputs, report=report)

    def _fail(
        self,
        doc_sink: CollectingSink,
        report: MergeReport,
        outputs: dict[str, str],
        error: DocMergeError,
        kind: DiagnosticKind,
    ) -> MergeResult:
        logger.error("Merge failed: %s", error)
        doc_sink.emit(Diagnostic(
            kind=kind,
            message=error.message,
            part=error.part,
            details=dict(error.details),
        ))
        return MergeResult(success=False, parts=outputs, report=report, error=error.to_dict())

    @staticmethod
    def _raise_first_problem(report: MergeReport) -> None:
        for diagnostic in report.all_diagnostics():
            if diagnostic.severity in (Severity.DEBUG, Severity.INFO):
                continue
            raise diagnostic.to_exception()


# =============================================================================
# Convenience Functions
# =============================================================================

def merge(
    context: Mapping[str, str],
    document: DocumentInput,
    settings: Optional[EngineSettings] = None,
    writer: Optional[PartWriter] = None,
) -> MergeResult:
    """Merge with a one-off engine."""
    engine = MergeEngine(settings=settings or EngineSettings())
    return engine.merge(context, document, writer)
