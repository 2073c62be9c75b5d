"""Pure-Python MD5 message digest (RFC 1321).

The digest is built from 32-bit bitwise primitives only: left rotation,
modular addition and the four boolean mixing functions. A message is padded
into 64-byte blocks, each block is folded into the four chaining words
a, b, c, d with 64 steps, and the final words are serialized little-endian.

Use ``digest()`` / ``hexdigest()`` for one-shot hashing. ``MD5`` instances
hold the chaining state of a single computation and are not meant to be
shared between threads; the module-level functions create a fresh one per
call.
"""
import logging
import math

logger = logging.getLogger(__name__)

MASK32 = 0xffffffff
MASK64 = 0xffffffffffffffff
BLOCK_SIZE = 64
DIGEST_SIZE = 16


def _sine_constant(i):
    """floor(2^32 * |sin(i + 1)|), the i-th additive step constant."""
    return int(4294967296 * abs(math.sin(i + 1))) & MASK32


def _as_bytes(message):
    """Copy a bytes-like message; anything else is a TypeError."""
    try:
        return memoryview(message).tobytes()
    except TypeError:
        raise TypeError("md5 requires a bytes-like object, not %r"
                        % type(message).__name__) from None


class MD5:

    # Per-round left-rotation amounts (RFC 1321)
    S_table = ((7, 12, 17, 22),
               (5, 9, 14, 20),
               (4, 11, 16, 23),
               (6, 10, 15, 21))

    K_table = tuple(_sine_constant(i) for i in range(64))

    IV = (0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476)

    def __init__(self):
        """Initialize to the MD5 initial vector (IV)."""
        self.a, self.b, self.c, self.d = MD5.IV
        self.blocks = 0

    @property
    def state(self):
        return self.a, self.b, self.c, self.d

    @staticmethod
    def S(i):
        """Return the rotation amount for step index i (0 ≤ i < 64)."""
        return MD5.S_table[i // 16][i % 4]

    @staticmethod
    def K(i):
        """Return the additive constant for step index i."""
        return MD5.K_table[i]

    @staticmethod
    def F(b, c, d, i):
        """MD5 non-linear boolean function selected by step index i.

        Round 0 (i < 16): (b & c) | (~b & d)
        Round 1 (i < 32): (d & b) | (~d & c)
        Round 2 (i < 48): b ^ c ^ d
        Round 3 (i < 64): c ^ (b | ~d)
        """
        if i < 0:
            raise ValueError("Invalid loop index")
        elif i < 16:
            f = (b & c) | (~b & d)
        elif i < 32:
            f = (d & b) | (~d & c)
        elif i < 48:
            f = b ^ c ^ d
        elif i < 64:
            f = c ^ (b | ~d)
        else:
            raise ValueError("Invalid loop index")
        return f & MASK32

    @staticmethod
    def G(i):
        """Index of the message word consumed at step i."""
        if i < 0:
            raise ValueError("Invalid loop index")
        elif i < 16:
            return i
        elif i < 32:
            return (5*i + 1) % 16
        elif i < 48:
            return (3*i + 5) % 16
        elif i < 64:
            return (7*i) % 16
        raise ValueError("Invalid loop index")

    @staticmethod
    def ROT(x, i):
        """Rotate x left by S(i) bits, modulo 2^32."""
        x = x & MASK32
        n = MD5.S(i)
        return ((x << n) | (x >> (32 - n))) & MASK32

    @staticmethod
    def combine_words(a, b, c, d, x, i):
        """Compute b + ROT(a + F(b,c,d) + x + K(i), S(i)) (mod 2^32)."""
        f = MD5.F(b, c, d, i)
        comb = a + f + x + MD5.K(i)
        return (MD5.ROT(comb, i) + b) & MASK32

    @staticmethod
    def md5_iteration(a, b, c, d, x, i):
        """Perform one MD5 step (i) on state (a,b,c,d) with 32-bit word x.

        x is the message word already decoded to an int (little-endian).
        """
        b_new = MD5.combine_words(a, b, c, d, x, i)
        return d, b_new, b, c

    @staticmethod
    def length_field(num_bytes):
        """Bit length of a num_bytes message as the 8-byte little-endian trailer.

        The count wraps modulo 2^64.
        """
        return ((num_bytes * 8) & MASK64).to_bytes(8, 'little')

    @staticmethod
    def md5_padded(input_bytes):
        """Return input_bytes padded to a multiple of 64 bytes per MD5.

        Padding: 0x80 byte, then 0x00 bytes up to 56 mod 64, then the
        64-bit little-endian length (in bits). Padding is always applied,
        even when the input is already block aligned.
        """
        input_bytes = _as_bytes(input_bytes)
        index = len(input_bytes) % BLOCK_SIZE
        if index < 56:
            pad_len = 56 - index
        else:
            pad_len = 120 - index
        return (input_bytes + b"\x80" + b"\x00" * (pad_len - 1)
                + MD5.length_field(len(input_bytes)))

    @staticmethod
    def words(block):
        """Split a 64-byte block into sixteen little-endian 32-bit words."""
        assert len(block) == BLOCK_SIZE
        return [int.from_bytes(block[j*4:j*4 + 4], 'little') for j in range(16)]

    @staticmethod
    def md5_chunk(state, block):
        """Fold one 64-byte block into state and return the new state.

        The message word schedule matches MD5's four rounds:
        - Round 0: index = i
        - Round 1: index = (5·i + 1) mod 16
        - Round 2: index = (3·i + 5) mod 16
        - Round 3: index = (7·i) mod 16
        """
        x = MD5.words(block)
        a, b, c, d = state
        for i in range(64):
            a, b, c, d = MD5.md5_iteration(a, b, c, d, x[MD5.G(i)], i)

        return ((state[0] + a) & MASK32,
                (state[1] + b) & MASK32,
                (state[2] + c) & MASK32,
                (state[3] + d) & MASK32)

    def update_block(self, block):
        """Process one 64-byte block and update internal state."""
        self.a, self.b, self.c, self.d = MD5.md5_chunk(self.state, block)
        self.blocks += 1

    def serialize(self):
        """The digest bytes: a, b, c, d each little-endian, concatenated."""
        return b"".join(w.to_bytes(4, 'little') for w in self.state)

    def md5_digest(self, input_bytes):
        """Pad input_bytes, fold every block in order and return the digest.

        Each call starts over from the initial vector.
        """
        self.a, self.b, self.c, self.d = MD5.IV
        self.blocks = 0
        padded = MD5.md5_padded(input_bytes)
        for i in range(0, len(padded), BLOCK_SIZE):
            self.update_block(padded[i:i + BLOCK_SIZE])
        return self.serialize()

    @staticmethod
    def word_hex(x):
        """Hex of a chaining word in its serialized (little-endian) byte order."""
        return to_hex((x & MASK32).to_bytes(4, 'little'))


def to_hex(digest_bytes):
    """Render digest bytes as lowercase hex, high nibble first."""
    return "".join("%02x" % byte for byte in digest_bytes)


def digest(message):
    """Return the 16-byte MD5 digest of a bytes-like message."""
    data = _as_bytes(message)
    md5 = MD5()
    result = md5.md5_digest(data)
    logger.debug("md5 over %d bytes (%d blocks)", len(data), md5.blocks)
    return result


def hexdigest(message):
    """Return the MD5 digest of message as 32 lowercase hex characters."""
    return to_hex(digest(message))
