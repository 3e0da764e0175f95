#!/usr/bin/env python3
"""
Image import checks for MDX documents.

Pages import screenshots as ES modules (`import setupImg from './images/setup.png'`)
and reference them in JSX (`<img src={setupImg} />`). An import pointing at a
file that does not exist breaks the site build; an import that is never used
is dead weight.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from diagnostics import Diagnostic, ErrorType

logger = logging.getLogger(__name__)


IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "svg", "webp")

IMAGE_IMPORT_PATTERN = re.compile(
    r"""^import\s+(?P<name>[A-Za-z_$][\w$]*)\s+from\s+(?P<quote>['"])(?P<source>[^'"]+\.(?:"""
    + "|".join(IMAGE_EXTENSIONS)
    + r"""))(?P=quote);?[ \t]*$""",
    re.MULTILINE | re.IGNORECASE,
)


@dataclass(frozen=True)
class ImageImport:
    name: str
    source: str
    line: int


def find_image_imports(text: str) -> List[ImageImport]:
    """
    List image imports in a document.

    Example:
        >>> find_image_imports("import shot from './images/shot.png'")
        [ImageImport(name='shot', source='./images/shot.png', line=1)]
    """
    imports = []
    for match in IMAGE_IMPORT_PATTERN.finditer(text):
        imports.append(ImageImport(
            name=match.group("name"),
            source=match.group("source"),
            line=text.count("\n", 0, match.start()) + 1,
        ))
    return imports


def _is_used(text: str, image: ImageImport) -> bool:
    lines = text.splitlines()
    rest = "\n".join(line for number, line in enumerate(lines, start=1) if number != image.line)
    return re.search(rf"(?<![\w$]){re.escape(image.name)}(?![\w$])", rest) is not None


def verify_image_imports(file_paths: Iterable[Union[str, Path]]) -> List[Diagnostic]:
    """
    Check every image import in the given documents.

    Args:
        file_paths: Documents to check

    Returns:
        One diagnostic per missing image file and per unused import
    """
    errors: List[Diagnostic] = []

    for file_path in file_paths:
        path = Path(file_path)
        text = path.read_text(encoding='utf-8', errors='replace')

        for image in find_image_imports(text):
            target = (path.parent / image.source).resolve()
            if not target.is_file():
                errors.append(Diagnostic(
                    reason=f"Image `{image.name}` imports `{image.source}`, which does not exist",
                    kind=ErrorType.IMAGE_IMPORT_ERROR,
                    line=image.line,
                    column=1,
                    file_path=str(path),
                ))

            if not _is_used(text, image):
                errors.append(Diagnostic(
                    reason=f"Image `{image.name}` is imported but never used",
                    kind=ErrorType.IMAGE_IMPORT_ERROR,
                    line=image.line,
                    column=1,
                    file_path=str(path),
                ))

    logger.debug("Checked image imports, %d error(s)", len(errors))
    return errors
