from collections.abc import Iterable


class BuildError(Exception):
    pass


class ConfigError(BuildError):
    pass


class ProfileNotFoundError(BuildError):
    def __init__(self, profile_name: str, known_profiles: Iterable[str]) -> None:
        self.profile_name = profile_name
        self.known_profiles = sorted(known_profiles)
        super().__init__(
            f"Couldn't find build profile '{profile_name}', "
            f"known profiles: {self.known_profiles}"
        )


class StagingError(BuildError):
    pass


class NotSupportedError(BuildError):
    pass


class PlatformDirectoryError(BuildError):
    pass


class DeployError(BuildError):
    pass


class ArchiveError(BuildError):
    pass


class TransformError(Exception):
    pass


class SerializationError(TransformError):
    pass
