'''Encoding of feature templates as 64-bit keys.

A key packs a template type (8 bits), flags (8 bits) and the ids that fill
the template. Word ids (W) take 16 bits and tag/label ids (P) take 8 bits.
Bits shifted past position 63 are dropped.'''

MASK_64 = (1 << 64) - 1
WORD_BITS = 16
TAG_BITS = 8


def _pack(type, flags, fields):
    '''Pack (value, num_bits) fields after the type and flags bytes.'''
    key = type | (flags << 8)
    offset = 16
    for value, num_bits in fields:
        key |= value << offset
        offset += num_bits
    return key & MASK_64


class FeatureEncoder(object):
    @staticmethod
    def create_key_NONE(type, flags):
        return _pack(type, flags, [])

    @staticmethod
    def create_key_W(type, flags, w):
        return _pack(type, flags, [(w, WORD_BITS)])

    @staticmethod
    def create_key_WP(type, flags, w, p):
        return _pack(type, flags, [(w, WORD_BITS), (p, TAG_BITS)])

    @staticmethod
    def create_key_WW(type, flags, w1, w2):
        return _pack(type, flags, [(w1, WORD_BITS), (w2, WORD_BITS)])

    @staticmethod
    def create_key_P(type, flags, p):
        return _pack(type, flags, [(p, TAG_BITS)])

    @staticmethod
    def create_key_PP(type, flags, p1, p2):
        return _pack(type, flags, [(p1, TAG_BITS), (p2, TAG_BITS)])

    @staticmethod
    def create_key_PPP(type, flags, p1, p2, p3):
        return _pack(type, flags,
                     [(p1, TAG_BITS), (p2, TAG_BITS), (p3, TAG_BITS)])
