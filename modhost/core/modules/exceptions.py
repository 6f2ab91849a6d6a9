"""Exception classes for the module installer"""


class ModuleError(Exception):
    """Base exception for all module-related errors"""
    pass


class ArchiveOpenError(ModuleError):
    """Raised when a module archive is missing or is not a valid zip container"""
    pass


class ValidationError(ModuleError):
    """Raised when required files are missing or malformed"""

    def __init__(self, errors):
        self.detail = errors
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class ExtractionError(ModuleError):
    """Raised when staging an archive fails"""
    pass


class SchemaLoadError(ModuleError):
    """Raised when a descriptor schema version cannot be loaded"""
    pass


class DefinitionInvalid(ModuleError):
    """Raised when a schema rejects the declared module data"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UnsupportedModeError(ModuleError):
    """Raised for install modes that are not implemented (bundle, remote)"""
    pass


class CopyError(ModuleError):
    """Raised when copying a staged module into its live directory fails"""
    pass


class RegistryError(ModuleError):
    """Raised when registry operations fail"""
    pass


RegistryWriteError = RegistryError
