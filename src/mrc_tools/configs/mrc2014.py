"""
reference:
[1] MRC2014:
https://www.ccpem.ac.uk/mrc_format/mrc2014.php
"""

HEADER_SIZE = 1024

# (name, offset, numpy type code, shape). Type codes carry no byte order,
# the order is applied per file from the machine stamp.
HEADER_FIELDS = [
    ("nx",      0,   "i4", ()),
    ("ny",      4,   "i4", ()),
    ("nz",      8,   "i4", ()),
    ("mode",    12,  "i4", ()),
    ("nxstart", 16,  "i4", ()),
    ("nystart", 20,  "i4", ()),
    ("nzstart", 24,  "i4", ()),
    ("mx",      28,  "i4", ()),
    ("my",      32,  "i4", ()),
    ("mz",      36,  "i4", ()),
    ("xlen",    40,  "f4", ()),
    ("ylen",    44,  "f4", ()),
    ("zlen",    48,  "f4", ()),
    ("alpha",   52,  "f4", ()),
    ("beta",    56,  "f4", ()),
    ("gamma",   60,  "f4", ()),
    ("mapc",    64,  "i4", ()),
    ("mapr",    68,  "i4", ()),
    ("maps",    72,  "i4", ()),
    ("dmin",    76,  "f4", ()),
    ("dmax",    80,  "f4", ()),
    ("dmean",   84,  "f4", ()),
    ("ispg",    88,  "i4", ()),
    ("nsymbt",  92,  "i4", ()),
    ("extra",   96,  "V100", ()),
    ("origin",  196, "f4", (3,)),
    ("map",     208, "V4", ()),
    ("machst",  212, "V4", ()),
    ("rms",     216, "f4", ()),
    ("nlabl",   220, "i4", ()),
    ("label",   224, "V800", ()),
]

# fields that are byte sequences, copied verbatim whatever the file order
BYTE_FIELDS = {"extra": 100, "map": 4, "machst": 4, "label": 800}

# packed sub-fields of the 100-byte reserved region
EXTTYP_OFFSET = 8
NVERSION_OFFSET = 12

MAP_SIGNATURE = b"MAP "

MACHST_LITTLE = b"\x44\x44\x00\x00"
MACHST_BIG = b"\x11\x11\x00\x00"

# 0 for image stacks, 1-230 for crystallographic space groups,
# 401-630 for volume stacks
ISPG_RANGES = ((0, 230), (401, 630))

AXIS_PERMUTATION = {1, 2, 3}

NUM_LABELS = 10
LABEL_SIZE = 80

NVERSION_MRC2014 = 20141

# numpy type code of the scalar held by each mode; complex int16 is a
# pair of int16 (real, imag), packed 4-bit is a byte holding two nibbles
MODE_SCALAR_CODES = {
    0: "i1",
    1: "i2",
    2: "f4",
    3: "i2",
    4: "c8",
    6: "u2",
    12: "f2",
    101: "u1",
}

MODE_BYTE_WIDTHS = {
    0: 1,
    1: 2,
    2: 4,
    3: 4,   # 2 bytes real + 2 bytes imaginary
    4: 8,   # 4 bytes real + 4 bytes imaginary
    6: 2,
    12: 2,
    101: 1,
}

# samples decoded per step when iterating lazily over a data block
ITER_CHUNK_SIZE = 4096

# synthetic ball volumes
BALL_SHAPE = (64, 64, 64)
BALL_DIAMETER = 40.0
BALL_MODES = (0, 1, 2, 3, 4, 6, 12)
BALL_FILENAME = "ball_mode_{mode}.mrc"
