class ModResolveError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(ModResolveError):
    # errors related to configuration files.
    pass

class ProjectModelError(ModResolveError):
    # inconsistent project model (unknown sdk/library, duplicate module names).
    pass

class InvariantError(ModResolveError):
    # programmer errors inside the resolver core; never expected in correct use.
    pass

class DiscoveryError(ModResolveError):
    # errors while walking the tree for files to check.
    pass
