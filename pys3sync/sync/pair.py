"""Sync pair: the local and remote ends of one run."""

from dataclasses import dataclass

from ..exceptions import ConfigurationError
from ..utils import S3_SCHEME, WILDCARD
from .filters import RuleSet, ScopeRule, split_wildcard
from .modes import SyncDirection


def is_remote_uri(path: str) -> bool:
    """Check if a path is an ``s3://`` URI."""
    return path.startswith(S3_SCHEME)


@dataclass(frozen=True)
class SyncPair:
    """A local directory and a bucket/key prefix, plus the direction.

    Examples:
        >>> pair = SyncPair.parse("./photos/*.jpg", "s3://my-bucket/backup")
        >>> pair.direction, pair.bucket, pair.key_prefix, pair.postfix
        (<SyncDirection.UPLOAD: 'upload'>, 'my-bucket', 'backup', '.jpg')
    """

    local_dir: str
    bucket: str
    key_prefix: str
    direction: SyncDirection
    postfix: str = ""

    def __post_init__(self) -> None:
        if not self.bucket:
            raise ConfigurationError("Remote path must name a bucket: s3://BUCKET/...")

    @property
    def rules(self) -> RuleSet:
        """Scope rules for this pair (the trailing part of the wildcard)."""
        return RuleSet.of([ScopeRule.postfix_rule(self.postfix)])

    @property
    def remote_uri(self) -> str:
        return f"{S3_SCHEME}{self.bucket}/{self.key_prefix}"

    @classmethod
    def parse(cls, source: str, target: str) -> "SyncPair":
        """Build a pair from SOURCE and TARGET arguments.

        Exactly one of them must be an ``s3://bucket/prefix`` URI. SOURCE may
        end in a single wildcard expression such as ``*.json``.

        Raises:
            ConfigurationError: If the arguments don't describe a valid pair
        """
        if WILDCARD in target:
            raise ConfigurationError(f"TARGET cannot contain a wildcard '{WILDCARD}'")

        source, postfix = split_wildcard(source)

        # Make sure there's one remote path and one local path
        if is_remote_uri(source):
            if is_remote_uri(target):
                raise ConfigurationError("SOURCE and TARGET can't both be S3 paths")
            direction = SyncDirection.DOWNLOAD
            local, remote = target, source
        elif is_remote_uri(target):
            direction = SyncDirection.UPLOAD
            local, remote = source, target
        else:
            raise ConfigurationError("SOURCE (x)or TARGET must be an S3 path")

        if not local:
            raise ConfigurationError("Local path must not be empty")

        # A bucket is only the root of the path, the rest is the key prefix
        bucket, _, key_prefix = remote[len(S3_SCHEME) :].partition("/")
        return cls(
            local_dir=local,
            bucket=bucket,
            key_prefix=key_prefix,
            direction=direction,
            postfix=postfix,
        )
