'''A cache of feature-label weights, used to speed up repeated scoring.'''


class FeatureLabelCache(object):
    '''Hash table mapping (feature, label) pairs to the weight they had when
    they were first looked up.

    The cached weights are only valid while the labeled weights they were read
    from are not modified; the owner must call clear() after any write.
    Hit and miss counters are monotonic and survive clear().'''
    def __init__(self):
        self.cache = dict()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self.cache)

    def get_size(self):
        return len(self.cache)

    def increment_hits(self):
        self.hits += 1

    def increment_misses(self):
        self.misses += 1

    def insert(self, feature, label, value):
        '''Insert a new pair {(feature, label): value} in the hash table.'''
        self.cache[(feature, label)] = value

    def find(self, feature, label):
        '''Search for a given (feature, label) key in the hash table.

        :return: the cached value, or None if not found
        '''
        return self.cache.get((feature, label))

    def clear(self):
        '''Drop all cached weights, keeping the counters.'''
        if self.cache:
            self.cache.clear()
