"""网络工具 — cartridge 来源 URL 分类"""

from __future__ import annotations

import re
from enum import Enum
from urllib.parse import urlparse

from cartrepo.core.exceptions import UnsupportedSourceError

_HTTP_SCHEME_RE = re.compile(r"^https?$")
_TGZ_RE = re.compile(r"(\.tar\.gz|\.tgz)$")


class SourceKind(str, Enum):
    """远程 cartridge 的获取方式"""

    GIT = "git"
    ZIP = "zip"
    TGZ = "tgz"
    TAR = "tar"
    FILE = "file"


def classify_source_url(url: str) -> SourceKind:
    """按 scheme 和后缀判断 cartridge 来源类型

    判断顺序固定：git 优先，其次 http(s) 的 zip / tar.gz / tar，最后 file://。

    Raises:
        UnsupportedSourceError: 无法识别的 URL
    """
    if not url:
        raise UnsupportedSourceError(url)

    scheme = urlparse(url).scheme
    if scheme == "git" or url.endswith(".git"):
        return SourceKind.GIT
    if _HTTP_SCHEME_RE.match(scheme):
        if ".zip" in url:
            return SourceKind.ZIP
        if _TGZ_RE.search(url):
            return SourceKind.TGZ
        if url.endswith(".tar"):
            return SourceKind.TAR
    if scheme == "file":
        return SourceKind.FILE
    raise UnsupportedSourceError(url)
