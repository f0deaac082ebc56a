"""Protocol layer: frame classification, command builders, and page decoding."""

from .framing import classify_frame, DataPageFrame, RawFrame
from .commands import Command, build_start_fetch, build_next_page, build_text
from .parser import decode_frame, decode_page, PageResult
