"""
Foreign-function boundary for host processes (game servers).

    int32 analyze_round(const uint8* in_ptr, size_t in_len, uint8** out_ptr, size_t* out_len)
    void  free_buffer(uint8* ptr, size_t len)

Input is a UTF-8 JSON array of stat records. The caller keeps ownership of
the input buffer. On success (status 0) a new buffer holding
{"results": [...]} is allocated with the C runtime's malloc and its address
and length are written to *out_ptr and *out_len. On failure the output
parameters are left untouched.

Caller obligations, which cannot be checked here:
  * call free_buffer exactly once per successful analyze_round, with the
    same address and length (twice is a double free, never is a leak);
  * never pass a pointer that did not come from analyze_round to free_buffer;
  * never read the output buffer after freeing it.

No exception or message crosses the boundary, only the status code.
"""

import ctypes
import ctypes.util
import enum
import logging
import sys
from typing import Dict, Tuple

from nocheat.analysis import analyze_stats
from nocheat.errors import FFIProtocolError, InputValidationError
from nocheat.types import decode_records, encode_response

logger = logging.getLogger(__name__)


class Status(enum.IntEnum):
    OK = 0
    NULL_POINTER = -1
    DECODE_ERROR = -2
    ANALYSIS_ERROR = -3
    ENCODE_ERROR = -4
    ALLOCATION_ERROR = -5


def _load_libc():
    if sys.platform == "win32":
        return ctypes.cdll.msvcrt
    return ctypes.CDLL(ctypes.util.find_library("c"))


_libc = _load_libc()
_libc.malloc.restype = ctypes.c_void_p
_libc.malloc.argtypes = [ctypes.c_size_t]
_libc.free.restype = None
_libc.free.argtypes = [ctypes.c_void_p]


def _address(ptr) -> int:
    """Raw address of an int, c_void_p, ctypes pointer or array. NULL is 0."""
    if ptr is None:
        return 0
    try:
        return ctypes.cast(ptr, ctypes.c_void_p).value or 0
    except (TypeError, ctypes.ArgumentError) as e:
        raise FFIProtocolError(f"Not a pointer: {ptr!r} ({e})", Status.NULL_POINTER) from e


def _allocate(payload: bytes) -> int:
    try:
        buf = _libc.malloc(len(payload))
    except MemoryError as e:
        raise FFIProtocolError("Output allocation failed", Status.ALLOCATION_ERROR) from e
    if not buf:
        raise FFIProtocolError(f"malloc({len(payload)}) returned NULL", Status.ALLOCATION_ERROR)
    ctypes.memmove(buf, payload, len(payload))
    return buf


def _run(stats_json_ptr, stats_json_len, out_json_ptr, out_json_len) -> None:
    in_addr = _address(stats_json_ptr)
    out_ptr_addr = _address(out_json_ptr)
    out_len_addr = _address(out_json_len)
    if not in_addr or not out_ptr_addr or not out_len_addr:
        raise FFIProtocolError("Null pointer argument", Status.NULL_POINTER)

    raw = ctypes.string_at(in_addr, stats_json_len)
    try:
        records = decode_records(raw)
    except (InputValidationError, ValueError, RecursionError) as e:
        raise FFIProtocolError(str(e), Status.DECODE_ERROR) from e

    try:
        response = analyze_stats(records)
    except Exception as e:
        raise FFIProtocolError(str(e), Status.ANALYSIS_ERROR) from e

    try:
        payload = encode_response(response)
    except (TypeError, ValueError) as e:
        raise FFIProtocolError(str(e), Status.ENCODE_ERROR) from e

    buf = _allocate(payload)
    ctypes.c_void_p.from_address(out_ptr_addr).value = buf
    ctypes.c_size_t.from_address(out_len_addr).value = len(payload)


def analyze_round(stats_json_ptr, stats_json_len, out_json_ptr, out_json_len) -> int:
    try:
        _run(stats_json_ptr, stats_json_len, out_json_ptr, out_json_len)
    except FFIProtocolError as e:
        logger.warning("analyze_round failed with status %d: %s", e.status, e.message)
        return int(e.status)
    except Exception:
        # Nothing may unwind into the host; a C thunk would turn this into an undefined status
        logger.exception("analyze_round failed unexpectedly")
        return int(Status.ANALYSIS_ERROR)
    return int(Status.OK)


def free_buffer(ptr, length) -> None:
    addr = _address(ptr)
    if not addr or length == 0:
        return
    _libc.free(addr)


def analyze_bytes(payload: bytes) -> Tuple[int, bytes]:
    """Managed-memory entry: copies the result out and releases the C buffer."""
    in_buf = ctypes.create_string_buffer(payload)
    out_ptr = ctypes.c_void_p()
    out_len = ctypes.c_size_t()

    status = analyze_round(in_buf, len(payload), ctypes.pointer(out_ptr), ctypes.pointer(out_len))
    if status != Status.OK:
        return status, b""
    try:
        return status, ctypes.string_at(out_ptr.value, out_len.value)
    finally:
        free_buffer(out_ptr.value, out_len.value)


ANALYZE_ROUND_PROTOTYPE = ctypes.CFUNCTYPE(
    ctypes.c_int32, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_void_p, ctypes.c_void_p
)
FREE_BUFFER_PROTOTYPE = ctypes.CFUNCTYPE(None, ctypes.c_void_p, ctypes.c_size_t)

# Module-level so the C thunks live as long as the process
ANALYZE_ROUND = ANALYZE_ROUND_PROTOTYPE(analyze_round)
FREE_BUFFER = FREE_BUFFER_PROTOTYPE(free_buffer)


def exported_functions() -> Dict[str, int]:
    """C function pointer addresses for a host embedding the interpreter."""
    return {
        "analyze_round": ctypes.cast(ANALYZE_ROUND, ctypes.c_void_p).value,
        "free_buffer": ctypes.cast(FREE_BUFFER, ctypes.c_void_p).value,
    }
