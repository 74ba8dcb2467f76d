from ..classifier.features import FeatureEncoder


# feature template types
ARC_BIAS = 0
ARC_MW = 1
ARC_MP = 2
ARC_HW = 3
ARC_HP = 4
ARC_HP_MP = 5
ARC_HW_MW = 6
ARC_HW_MP = 7
ARC_HP_MW = 8
ARC_HP_MP_BP = 9
SIBLING_BIAS = 10
SIBLING_MP_SP = 11
SIBLING_HP_MP_SP = 12
SIBLING_MW_SW = 13

WORD_MASK = 0xFFFF
TAG_MASK = 0xFF
MAX_DISTANCE = 10


def _flags(head, modifier):
    '''Encode the arc direction and a binned distance in 8 bits.'''
    direction = 1 if modifier > head else 0
    distance = min(abs(modifier - head), MAX_DISTANCE)
    return direction | (distance << 1)


class DependencyLabelerFeatures(object):
    '''Computes the feature keys for the parts of a dependency labeler.

    Keys are conjoined with labels by the labeled parameters, so they only
    describe the arc (or pair of sibling arcs) being labeled.'''
    def compute_arc_features(self, instance, head, modifier):
        hw = instance.get_word(head) & WORD_MASK
        mw = instance.get_word(modifier) & WORD_MASK
        hp = instance.get_tag(head) & TAG_MASK
        mp = instance.get_tag(modifier) & TAG_MASK
        flags = _flags(head, modifier)

        # tag of the word between head and modifier closest to the modifier
        if abs(head - modifier) > 1:
            step = 1 if head > modifier else -1
            bp = instance.get_tag(modifier + step) & TAG_MASK
        else:
            bp = TAG_MASK

        features = []
        for arc_flags in [0, flags]:
            features.extend([
                FeatureEncoder.create_key_NONE(ARC_BIAS, arc_flags),
                FeatureEncoder.create_key_W(ARC_MW, arc_flags, mw),
                FeatureEncoder.create_key_P(ARC_MP, arc_flags, mp),
                FeatureEncoder.create_key_W(ARC_HW, arc_flags, hw),
                FeatureEncoder.create_key_P(ARC_HP, arc_flags, hp),
                FeatureEncoder.create_key_PP(ARC_HP_MP, arc_flags, hp, mp),
                FeatureEncoder.create_key_WW(ARC_HW_MW, arc_flags, hw, mw),
                FeatureEncoder.create_key_WP(ARC_HW_MP, arc_flags, hw, mp),
                FeatureEncoder.create_key_WP(ARC_HP_MW, arc_flags, mw, hp),
                FeatureEncoder.create_key_PPP(ARC_HP_MP_BP, arc_flags,
                                              hp, mp, bp),
            ])
        return features

    def compute_sibling_features(self, instance, head, modifier, sibling):
        hp = instance.get_tag(head) & TAG_MASK
        mp = instance.get_tag(modifier) & TAG_MASK
        sp = instance.get_tag(sibling) & TAG_MASK
        mw = instance.get_word(modifier) & WORD_MASK
        sw = instance.get_word(sibling) & WORD_MASK
        # both siblings on the same side of the head, or one on each side
        flags = _flags(head, modifier) & 1
        flags |= (_flags(head, sibling) & 1) << 1

        return [
            FeatureEncoder.create_key_NONE(SIBLING_BIAS, flags),
            FeatureEncoder.create_key_PP(SIBLING_MP_SP, flags, mp, sp),
            FeatureEncoder.create_key_PPP(SIBLING_HP_MP_SP, flags,
                                          hp, mp, sp),
            FeatureEncoder.create_key_WW(SIBLING_MW_SW, flags, mw, sw),
        ]
