class ProvisionerError(Exception):
    pass


class MetadataError(ProvisionerError):
    pass


class TagDiscoveryTimeout(ProvisionerError):
    pass


class CloudCallError(ProvisionerError):
    pass


class StateStoreError(ProvisionerError):
    pass
