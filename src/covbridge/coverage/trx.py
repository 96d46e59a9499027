r"""Test result (.trx) file parser.

Only the parts of the result file needed to find coverage are read.
Structure (namespace omitted):

<TestRun>
  <TestSettings name="default">
    <Deployment runDeploymentRoot="LOCAL SERVICE_MACHINE 2015-05-06 08_38_35"/>
  </TestSettings>
  <ResultSummary>
    <CollectorDataEntries>
      <Collector uri="datacollector://microsoft/CodeCoverage/2.0">
        <UriAttachments>
          <UriAttachment>
            <A href="MACHINE\LOCAL SERVICE_MACHINE 2015-05-06 08_38_35.coverage"/>
          </UriAttachment>
        </UriAttachments>
      </Collector>
    </CollectorDataEntries>
  </ResultSummary>
</TestRun>

Elements are matched on their local name, so files written with the 2010
namespace, with a prefixed namespace, or with none at all parse the same way.
Unknown elements are ignored.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator
from pathlib import Path

import structlog

from covbridge.config.constants import (
    CODE_COVERAGE_COLLECTOR_URI_PREFIX,
    DEFAULT_TEST_SETTINGS_NAME,
)
from covbridge.coverage.models import InvalidFormat, ResultRun

log = structlog.get_logger(__name__)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        # Comments and processing instructions
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in elem:
        if _local_name(child.tag) == name:
            yield child


def _descend(elem: ET.Element, *names: str) -> Iterator[ET.Element]:
    """Yield all elements reached by following child names from elem."""
    if not names:
        yield elem
        return
    head, *rest = names
    for child in _children(elem, head):
        yield from _descend(child, *rest)


def _is_code_coverage_collector(collector: ET.Element) -> bool:
    uri = collector.get("uri") or ""
    return uri.lower().startswith(CODE_COVERAGE_COLLECTOR_URI_PREFIX)


def extract_attachment_uris(root: ET.Element) -> list[str]:
    """Coverage attachment hrefs, in document order."""
    uris: list[str] = []
    collectors = _descend(root, "ResultSummary", "CollectorDataEntries", "Collector")
    for collector in collectors:
        if not _is_code_coverage_collector(collector):
            continue
        for anchor in _descend(collector, "UriAttachments", "UriAttachment", "A"):
            href = anchor.get("href")
            if href:
                uris.append(href)
    return uris


def extract_deployment_root(root: ET.Element) -> str | None:
    """The run deployment root override, if the file records one."""
    for settings in _children(root, "TestSettings"):
        name = settings.get("name")
        # Older schema variants leave the settings unnamed
        if name is not None and name != DEFAULT_TEST_SETTINGS_NAME:
            continue
        for deployment in _children(settings, "Deployment"):
            value = deployment.get("runDeploymentRoot")
            if value:
                return value
    return None


class TrxFileParser:
    """Parses a single result file into a ResultRun.

    Never raises for bad input: unreadable or malformed files are reported as
    a warning and returned as InvalidFormat.
    """

    def parse(self, path: Path) -> ResultRun | InvalidFormat:
        try:
            content = path.read_bytes()
            root = ET.fromstring(content)
        except (ET.ParseError, OSError) as e:
            log.warning("trx.invalid_file", path=str(path), error=str(e))
            return InvalidFormat(source_path=path, reason=str(e))

        if _local_name(root.tag) != "TestRun":
            log.debug("trx.unexpected_root", path=str(path), root=_local_name(root.tag))
            return ResultRun(source_path=path)

        uris = extract_attachment_uris(root)
        if len(uris) > 1:
            # One collector run per result file is expected; several usually
            # means a multi-agent run
            log.info("trx.multiple_attachments", path=str(path), count=len(uris))

        return ResultRun(
            source_path=path,
            deployment_root=extract_deployment_root(root),
            attachment_uris=tuple(uris),
        )
