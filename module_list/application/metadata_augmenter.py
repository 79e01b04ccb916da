"""Adds tags and license from local ``package.json`` files to module records."""

import logging
from typing import Iterable, List

from module_list.domain.module import Issue, ModuleRecord, ParseResult
from module_list.infrastructure.package_reader import DescriptorFormatError, PackageReader

logger = logging.getLogger(__name__)

MISSING_DESCRIPTOR = "There is no 'package.json'. We need this file to gather information about the module."
UNPARSEABLE_DESCRIPTOR = "An error occurred parsing 'package.json'."
DESCRIPTOR_READ_FAILED = "An error occurred while getting information from 'package.json': {error}"


class MetadataAugmenter:
    """Merges local descriptor data into records, recording problems as issues."""

    def __init__(self, reader: PackageReader):
        self.reader = reader

    def augment(self, result: ParseResult) -> ParseResult:
        record = result.record
        record.tags = []
        logger.debug(f"Reading package data for {record.name} ({record.maintainer})")

        try:
            descriptor = self.reader.read(record.name, record.maintainer)
            keywords = descriptor.get("keywords")
            if keywords:
                if not isinstance(keywords, list):
                    raise TypeError(f"'keywords' must be a list, got {type(keywords).__name__}")
                record.tags = [tag.lower() for tag in keywords]
            license_name = descriptor.get("license")
            if license_name is not None:
                record.license = license_name
        except FileNotFoundError:
            result.add(Issue.warning(MISSING_DESCRIPTOR))
        except DescriptorFormatError:
            result.add(Issue.error(UNPARSEABLE_DESCRIPTOR))
        except (OSError, TypeError, AttributeError, ValueError) as e:
            result.add(Issue.error(DESCRIPTOR_READ_FAILED.format(error=e)))
        return result

    def augment_all(self, results: Iterable[ParseResult]) -> List[ModuleRecord]:
        augmented = [self.augment(result) for result in results]
        flagged = sum(1 for result in augmented if not result.clean)
        logger.info(f"Augmented {len(augmented)} modules ({flagged} with issues)")
        return [result.record for result in augmented]
