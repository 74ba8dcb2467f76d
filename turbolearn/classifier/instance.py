import random


class Instance(object):
    '''An abstract instance.'''
    def __init__(self, input_, output=None):
        self.input = input_
        self.output = output


class InstanceData(object):
    """
    Class for storing a list of instances, their corresponding parts, features
    and gold outputs.
    """
    def __init__(self, instances, parts, features=None, gold_parts=None):
        """
        :param instances: a list of instances
        :type instances: list
        :param parts: a list of the parts of each instance
        :type parts: list
        :param features: a list with the features of each instance (one entry
            per part), or None
        :param gold_parts: a list of numpy arrays with the gold output of each
            instance (one value per part), or None if there is no gold output
        """
        self.instances = instances
        self.parts = parts
        if features is None:
            features = [None] * len(instances)
        self.features = features
        if gold_parts is None:
            gold_parts = [None] * len(instances)
        self.gold_parts = gold_parts

    def __getitem__(self, item):
        if isinstance(item, slice):
            return InstanceData(self.instances[item], self.parts[item],
                                self.features[item], self.gold_parts[item])
        return self.instances[item], self.parts[item], self.features[item], \
            self.gold_parts[item]

    def __len__(self):
        return len(self.instances)

    def _zip_data(self):
        """Auxiliary internal function"""
        # zip the attributes together so they are shuffled in the same order
        data = [self.instances, self.parts, self.features, self.gold_parts]
        return list(zip(*data))

    def _unzip_data(self, zipped_data):
        """Auxiliary internal function"""
        if not zipped_data:
            return
        instances, parts, features, gold_parts = zip(*zipped_data)
        self.instances = list(instances)
        self.parts = list(parts)
        self.features = list(features)
        self.gold_parts = list(gold_parts)

    def shuffle(self, rng=random):
        """
        Shuffle the data stored by this object in place.

        :param rng: an object with a shuffle method, such as random.Random
        """
        zipped = self._zip_data()
        rng.shuffle(zipped)
        self._unzip_data(zipped)
