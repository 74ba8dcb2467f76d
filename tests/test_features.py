from turbolearn.classifier.features import FeatureEncoder, MASK_64
from turbolearn.labeler.dependency_labeler_features import \
    DependencyLabelerFeatures
from turbolearn.labeler.dependency_labeler_instance import \
    DependencyLabelerInstance


def test_keys_pack_type_flags_and_ids():
    assert FeatureEncoder.create_key_NONE(3, 5) == 3 | (5 << 8)
    assert FeatureEncoder.create_key_WP(1, 0, 0xABCD, 0x12) == \
        1 | (0xABCD << 16) | (0x12 << 32)
    assert FeatureEncoder.create_key_PPP(2, 1, 1, 2, 3) == \
        2 | (1 << 8) | (1 << 16) | (2 << 24) | (3 << 32)


def test_keys_are_masked_to_64_bits():
    key = FeatureEncoder.create_key_WW(1, 0, 0xFFFF, 1 << 40)
    assert key <= MASK_64


def test_arc_features_depend_on_direction():
    instance = DependencyLabelerInstance(words=[0, 7, 8], tags=[9, 1, 2],
                                         heads=[-1, 2, 0])
    extractor = DependencyLabelerFeatures()
    left = extractor.compute_arc_features(instance, 2, 1)
    right = extractor.compute_arc_features(instance, 0, 2)

    # the first half of the templates has no direction or distance flags
    assert len(left) == len(right) == 20
    assert left[0] == right[0]
    assert left[10] != right[10]
    assert len(set(left)) == len(left)
