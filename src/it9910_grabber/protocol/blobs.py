"""Opaque firmware configuration payloads for the PC grabber opcode.

These blocks were captured from the vendor driver and are sent verbatim.
Their internal layout is not decoded; the only field this package ever
touches is the capture index inside ``PC_GRABBER_INDEXED``.
"""

from __future__ import annotations

GET_SOURCE_QUERY = bytes(8)

PC_GRABBER_SMALL_QUERY = bytes.fromhex("01 40 38 38 3c c6 b0 93 ba c1 b0 93")

# Enable flag lives at offset 8.
PC_GRABBER_SMALL_SET = bytes.fromhex("01 40 38 38 51 d3 cf 77 00 00 00 00")
PC_GRABBER_SMALL_ENABLE_OFFSET = 0x08

# 32-bit little-endian capture index lives at offset 0x0c.
PC_GRABBER_INDEXED = bytes.fromhex(
    "08 20 38 38 00 00 00 00 05 00 00 00 00 00 00 00 0f 00 00 00 80 07 00 00"
    "38 04 00 00 10 27 00 00 00 00 00 00 00 00 00 00 1e 00 00 00 1e 00 00 00"
    "00 00 00 00 00 00 00 00 00 00 00 00"
)
PC_GRABBER_INDEX_OFFSET = 0x0C

PC_GRABBER_LARGE = bytes.fromhex(
    "00 02 00 00 01 e0 10 99 01 00 00 00 36 00 10 99 02 00 38 38 3c c6 b0 93 ba c1 b0 93 00 00 00 00"
    "28 8b 5d 8a 5d 6b b0 93 74 d0 cc 84 b8 63 df 84 b8 65 df 84 48 ce d8 84 07 00 00 00 3c c6 b0 93"
    "ae ba b0 93 24 8b 5d 8a 98 c6 b0 93 c0 a8 98 84 01 00 00 c0 78 8b 5d 8a 21 61 22 8d 74 d0 cc 84"
    "b8 65 df 84 b8 63 df 84 ac aa 7f 07 d0 12 22 8d 28 00 00 00 05 ce d8 84 00 00 00 00 20 00 00 00"
    "00 02 00 00 01 00 00 00 00 02 00 00 3c 8b 5d 8a 00 00 00 00 c0 8c 5d 8a ea 0a 22 8d d4 3b 00 00"
    "fe ff ff ff ac 8b 5d 8a 85 5a 22 8d 48 ce d8 84 05 00 00 00 b0 38 cb 95 b8 63 df 84 28 00 00 00"
    "00 00 00 00 00 00 00 00 e8 e2 d8 84 48 ce d8 84 48 ce d8 84 25 02 00 c0 d4 8b 5d 8a 43 6c 22 8d"
    "48 ce d8 84 60 38 cb 95 30 52 d8 84 38 52 d8 84 00 00 00 00 00 00 00 00 e8 e2 d8 84 08 d0 cc 84"
    "e4 8b 5d 8a 8f 54 22 8d 70 5c 3e 84 48 ce d8 84 fc 8b 5d 8a ba 50 21 8d 70 5c 3e 84 48 ce d8 84"
    "70 5c 3e 84 00 00 00 00 14 8c 5d 8a 47 20 83 82 70 5c 3e 84 48 ce d8 84 48 ce d8 84 70 5c 3e 84"
    "34 8c 5d 8a d5 89 a0 82 e8 e2 d8 84 48 ce d8 84 48 cf d8 84 b4 01 00 00 8c 8c 5d 04 44 8c 5d 8a"
    "d0 8c 5d 8a c8 ad a0 82 70 5c 3e 84 e8 e2 d8 84 00 00 00 00 01 f1 a4 82 00 7a 6b 20 02 00 00 00"
    "f4 7d 6b 20 44 04 00 00 c8 fb 25 09 73 1d a1 82 00 00 00 00 9f 01 12 00 00 00 00 00 10 00 00 00"
    "e8 e2 d8 84 00 00 00 00 d5 74 a5 08 c0 0a d8 84 84 75 a5 82 01 8e 8b 82 c8 f5 42 84 10 00 00 00"
    "a4 8c 5d 8a 30 fc 25 09 00 7a 6b 20 03 00 00 00 01 f1 a4 82 c8 f5 42 84 e8 e2 d8 84 00 00 00 00"
    "00 00 00 00 54 8c 5d 8a 18 8d 5d 8a ff ff ff ff 0b 8e 8b 82 7c f2 b3 28 fe ff ff ff 04 8d 5d 8a"
)
