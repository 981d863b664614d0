"""
Built-in named rules.

Rules are grouped by the platforms they apply to. Ids follow the
"<domain>/<name>" convention:

    linux/*, darwin/*, win/*   Platform-specific protections
    env/*, fs/*, cli/*         Cross-platform rules (platforms=["all"])

Call register_platform_rules(registry) to add all of them to a registry.
"""

import re

from veil.rules.registry import RuleRegistry
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    NamedRule,
    Platform,
    RuleCategory,
    RuleSeverity,
)


def _rm_target(path: str) -> re.Pattern[str]:
    """Match rm (with any flags) aimed at path or anything below it."""
    return re.compile(rf"\brm\s+(?:-\S+\s+)*{re.escape(path)}(?:/|\s|$)")


def _win_delete(path: str) -> re.Pattern[str]:
    """Match Windows delete commands aimed at a path fragment."""
    return re.compile(
        rf"(?:\bdel\b|\berase\b|\brmdir\b|\brd\b|Remove-Item|\brm\b).*{path}",
        re.IGNORECASE,
    )


_RM_ABOVE_CWD = re.compile(r"\brm\s+(?:\S+\s+)*\.\.(?:/|\s|$)")
_SSH_DIR = re.compile(r"(?:^|/)\.ssh(?:/|$)")


# =============================================================================
# Linux
# =============================================================================

linux_rules: list[NamedRule] = [
    NamedRule(
        id="linux/no-delete-root",
        description="Prevent rm -rf /",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=re.compile(r"\brm\s+(?:-\S+\s+)*/\*?(?:\s|$)"),
                action="deny",
                reason="Refusing to delete root filesystem",
                safe_alternatives=["rm -ri ./path/to/dir"],
            ),
            CliRule(
                match="--no-preserve-root",
                action="deny",
                reason="Refusing to delete root filesystem (--no-preserve-root)",
            ),
        ],
    ),
    NamedRule(
        id="linux/no-delete-boot",
        description="Prevent deleting /boot",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(match=_rm_target("/boot"), action="deny", reason="Deleting /boot makes the system unbootable"),
        ],
    ),
    NamedRule(
        id="linux/no-delete-etc",
        description="Prevent deleting /etc",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(match=_rm_target("/etc"), action="deny", reason="Deleting system configuration in /etc"),
        ],
    ),
    NamedRule(
        id="linux/no-delete-var",
        description="Prevent deleting /var",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(match=_rm_target("/var"), action="deny", reason="Deleting system state in /var"),
        ],
    ),
    NamedRule(
        id="linux/no-delete-above-cwd",
        description="Prevent deleting paths above the working directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=_RM_ABOVE_CWD,
                action="deny",
                reason="Deleting outside the working directory",
                safe_alternatives=["rm ./path/inside/project"],
            ),
        ],
    ),
    NamedRule(
        id="linux/no-delete-home-recursive",
        description="Prevent recursive deletion of the home directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=re.compile(r"\brm\s+-[a-zA-Z]*[rR][a-zA-Z]*\s+(?:~|\$HOME|/home)/?(?:\s|$)"),
                action="deny",
                reason="Recursive deletion of the home directory",
            ),
        ],
    ),
    NamedRule(
        id="linux/no-dd-to-disk",
        description="Prevent dd writes to block devices",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bdd\s+.*\bof=/dev/(?:sd|hd|nvme|vd|xvd|mmcblk)"),
                action="deny",
                reason="Writing directly to a disk device",
            ),
        ],
    ),
    NamedRule(
        id="linux/no-mkfs",
        description="Prevent creating filesystems",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(match=re.compile(r"\bmkfs(?:\.\w+)?\s"), action="deny", reason="Formatting a device"),
        ],
    ),
    NamedRule(
        id="linux/hide-shadow",
        description="Hide /etc/shadow and /etc/gshadow",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.LINUX],
        file_rules=[
            FileRule(match=re.compile(r"^/etc/g?shadow-?$"), action="deny", reason="Password hashes"),
        ],
    ),
    NamedRule(
        id="linux/hide-ssh",
        description="Hide ~/.ssh",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.LINUX],
        file_rules=[
            FileRule(match=_SSH_DIR, action="deny", reason="SSH keys and configuration"),
        ],
    ),
    NamedRule(
        id="linux/hide-gnupg",
        description="Hide ~/.gnupg",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.LINUX],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|/)\.gnupg(?:/|$)"), action="deny", reason="GPG keyring"),
        ],
    ),
    NamedRule(
        id="linux/no-fork-bomb",
        description="Prevent the classic shell fork bomb",
        category=RuleCategory.SYSTEM,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=re.compile(r":\s*\(\s*\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"),
                action="deny",
                reason="Fork bomb",
            ),
        ],
    ),
    NamedRule(
        id="linux/no-chmod-777-recursive",
        description="Prevent recursive world-writable permissions",
        category=RuleCategory.SECURITY,
        platforms=[Platform.LINUX],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bchmod\b(?=.*\s-[a-zA-Z]*R)(?=.*\s0?777\b)"),
                action="deny",
                reason="Recursive chmod 777 makes everything world-writable",
                safe_alternatives=["chmod -R u+rwX,go+rX <dir>"],
            ),
        ],
    ),
]


# =============================================================================
# macOS
# =============================================================================

darwin_rules: list[NamedRule] = [
    NamedRule(
        id="darwin/no-delete-system",
        description="Prevent deleting /System",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(match=_rm_target("/System"), action="deny", reason="Deleting the macOS system volume"),
        ],
    ),
    NamedRule(
        id="darwin/no-delete-library",
        description="Prevent deleting /Library or ~/Library",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(
                match=re.compile(r"\brm\s+(?:-\S+\s+)*~?/Library(?:/|\s|$)"),
                action="deny",
                reason="Deleting Library folders",
            ),
        ],
    ),
    NamedRule(
        id="darwin/no-delete-applications",
        description="Prevent deleting /Applications",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(match=_rm_target("/Applications"), action="deny", reason="Deleting installed applications"),
        ],
    ),
    NamedRule(
        id="darwin/no-delete-above-cwd",
        description="Prevent deleting paths above the working directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(match=_RM_ABOVE_CWD, action="deny", reason="Deleting outside the working directory"),
        ],
    ),
    NamedRule(
        id="darwin/hide-keychain",
        description="Hide keychain files",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.DARWIN],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|/)Library/Keychains(?:/|$)"), action="deny", reason="Keychain"),
            FileRule(match=re.compile(r"\.keychain(?:-db)?$"), action="deny", reason="Keychain database"),
        ],
    ),
    NamedRule(
        id="darwin/no-security-dump",
        description="Prevent dumping keychain secrets",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bsecurity\s+(?:dump-keychain|find-generic-password|find-internet-password)\b"),
                action="deny",
                reason="Reading secrets from the keychain",
            ),
        ],
    ),
    NamedRule(
        id="darwin/hide-ssh",
        description="Hide ~/.ssh",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.DARWIN],
        file_rules=[
            FileRule(match=_SSH_DIR, action="deny", reason="SSH keys and configuration"),
        ],
    ),
    NamedRule(
        id="darwin/no-disable-sip",
        description="Prevent disabling System Integrity Protection",
        category=RuleCategory.SYSTEM,
        platforms=[Platform.DARWIN],
        cli_rules=[
            CliRule(match=re.compile(r"\bcsrutil\s+disable\b"), action="deny", reason="Disabling SIP"),
        ],
    ),
]


# =============================================================================
# Windows
# =============================================================================

windows_rules: list[NamedRule] = [
    NamedRule(
        id="win/no-delete-system32",
        description="Prevent deleting System32",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(match=_win_delete(r"system32"), action="deny", reason="Deleting System32"),
        ],
    ),
    NamedRule(
        id="win/no-delete-windows",
        description="Prevent deleting the Windows directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(match=_win_delete(r"[a-z]:[\\/]windows(?:[\\/\s\"]|$)"), action="deny", reason="Deleting C:\\Windows"),
        ],
    ),
    NamedRule(
        id="win/no-delete-program-files",
        description="Prevent deleting Program Files",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(match=_win_delete(r"program files"), action="deny", reason="Deleting installed programs"),
        ],
    ),
    NamedRule(
        id="win/no-format-drive",
        description="Prevent formatting drives",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(match=re.compile(r"\bformat\s+[a-z]:", re.IGNORECASE), action="deny", reason="Formatting a drive"),
            CliRule(match=re.compile(r"\bFormat-Volume\b", re.IGNORECASE), action="deny", reason="Formatting a volume"),
        ],
    ),
    NamedRule(
        id="win/no-delete-above-cwd",
        description="Prevent deleting paths above the working directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(
                match=re.compile(r"(?:\bdel\b|\brmdir\b|\brd\b|Remove-Item)\s.*\.\.[\\/]", re.IGNORECASE),
                action="deny",
                reason="Deleting outside the working directory",
            ),
        ],
    ),
    NamedRule(
        id="win/no-modify-registry",
        description="Prevent registry modification",
        category=RuleCategory.SYSTEM,
        platforms=[Platform.WINDOWS],
        cli_rules=[
            CliRule(
                match=re.compile(
                    r"\breg\s+(?:add|delete|import)\b|(?:Set-ItemProperty|Remove-Item|New-ItemProperty)\s+.*HK(?:LM|CU):",
                    re.IGNORECASE,
                ),
                action="deny",
                reason="Modifying the Windows registry",
            ),
        ],
    ),
    NamedRule(
        id="win/hide-ntuser",
        description="Hide NTUSER.DAT registry hives",
        category=RuleCategory.PRIVACY,
        platforms=[Platform.WINDOWS],
        file_rules=[
            FileRule(match=re.compile(r"ntuser\.dat", re.IGNORECASE), action="deny", reason="User registry hive"),
        ],
    ),
    NamedRule(
        id="win/hide-sam",
        description="Hide the SAM, SECURITY and SYSTEM hives",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.WINDOWS],
        file_rules=[
            FileRule(
                match=re.compile(r"[\\/]config[\\/](?:SAM|SECURITY|SYSTEM)$", re.IGNORECASE),
                action="deny",
                reason="Account database",
            ),
        ],
    ),
    NamedRule(
        id="win/hide-credential-manager",
        description="Hide Credential Manager stores",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.WINDOWS],
        file_rules=[
            FileRule(
                match=re.compile(r"[\\/]Microsoft[\\/](?:Credentials|Protect|Vault)(?:[\\/]|$)", re.IGNORECASE),
                action="deny",
                reason="Stored credentials",
            ),
        ],
    ),
]


# =============================================================================
# Cross-platform
# =============================================================================

cross_platform_rules: list[NamedRule] = [
    # Environment variables
    NamedRule(
        id="env/mask-aws",
        description="Mask AWS credentials",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[EnvRule(match=re.compile(r"^AWS_"), action="mask")],
    ),
    NamedRule(
        id="env/mask-azure",
        description="Mask Azure credentials",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[EnvRule(match=re.compile(r"^(?:AZURE_|ARM_CLIENT_SECRET)"), action="mask")],
    ),
    NamedRule(
        id="env/mask-gcp",
        description="Mask Google Cloud credentials",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[EnvRule(match=re.compile(r"^(?:GCP_|GCLOUD_|GOOGLE_)"), action="mask")],
    ),
    NamedRule(
        id="env/deny-passwords",
        description="Hide password variables",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[
            EnvRule(match=re.compile(r"PASS(?:WORD|WD)", re.IGNORECASE), action="deny", reason="Passwords are never exposed"),
        ],
    ),
    NamedRule(
        id="env/mask-tokens",
        description="Mask token variables",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[EnvRule(match=re.compile(r"TOKEN", re.IGNORECASE), action="mask")],
    ),
    NamedRule(
        id="env/mask-secrets",
        description="Mask secret and API key variables",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[EnvRule(match=re.compile(r"SECRET|PRIVATE_KEY|API_KEY", re.IGNORECASE), action="mask")],
    ),
    NamedRule(
        id="env/deny-database-urls",
        description="Hide database connection strings",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        env_rules=[
            EnvRule(
                match=re.compile(
                    r"^(?:DATABASE|DB|POSTGRES|MYSQL|MONGO(?:DB)?|REDIS)_URL$|_CONNECTION_STRING$",
                    re.IGNORECASE,
                ),
                action="deny",
                reason="Connection strings embed credentials",
            ),
        ],
    ),
    # Files
    NamedRule(
        id="fs/hide-env-files",
        description="Hide .env files (templates stay visible)",
        category=RuleCategory.SECURITY,
        platforms=[Platform.ALL],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|[\\/])\.env\.(?:example|sample|template)$"), action="allow"),
            FileRule(
                match=re.compile(r"(?:^|[\\/])\.env(?:\.[^\\/]*)?$"),
                action="deny",
                reason="Environment files contain secrets",
            ),
        ],
    ),
    NamedRule(
        id="fs/hide-private-keys",
        description="Hide private keys and certificates",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        file_rules=[
            FileRule(match=re.compile(r"\.(?:pem|key|p12|pfx)$", re.IGNORECASE), action="deny", reason="Private key material"),
            FileRule(match=re.compile(r"(?:^|[\\/])id_(?:rsa|dsa|ecdsa|ed25519)$"), action="deny", reason="SSH private key"),
        ],
    ),
    NamedRule(
        id="fs/hide-docker-config",
        description="Hide Docker registry credentials",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|[\\/])\.docker[\\/]config\.json$"), action="deny", reason="Docker registry auth"),
        ],
    ),
    NamedRule(
        id="fs/hide-npm-config",
        description="Hide npm auth configuration",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|[\\/])\.npmrc$"), action="deny", reason="npm auth tokens"),
        ],
    ),
    NamedRule(
        id="fs/hide-git-credentials",
        description="Hide stored git credentials",
        category=RuleCategory.CREDENTIALS,
        platforms=[Platform.ALL],
        file_rules=[
            FileRule(match=re.compile(r"(?:^|[\\/])\.git-credentials$"), action="deny", reason="Stored git credentials"),
        ],
    ),
    NamedRule(
        id="fs/hide-node-modules",
        description="Hide node_modules",
        category=RuleCategory.FILESYSTEM,
        platforms=[Platform.ALL],
        default_severity=RuleSeverity.WARN,
        file_rules=[
            FileRule(match="node_modules", action="deny", reason="Dependencies are too large for context"),
        ],
    ),
    NamedRule(
        id="fs/hide-vcs",
        description="Hide version control internals",
        category=RuleCategory.FILESYSTEM,
        platforms=[Platform.ALL],
        default_severity=RuleSeverity.WARN,
        file_rules=[
            FileRule(
                match=re.compile(r"(?:^|[\\/])\.(?:git|svn|hg)(?:[\\/]|$)"),
                action="deny",
                reason="Version control internals",
            ),
        ],
    ),
    NamedRule(
        id="fs/hide-build-output",
        description="Hide build output directories",
        category=RuleCategory.FILESYSTEM,
        platforms=[Platform.ALL],
        default_severity=RuleSeverity.OFF,
        file_rules=[
            FileRule(
                match=re.compile(r"(?:^|[\\/])(?:dist|build|out|target|__pycache__)(?:[\\/]|$)"),
                action="deny",
                reason="Generated build output",
            ),
        ],
    ),
    # Commands
    NamedRule(
        id="cli/no-curl-pipe-bash",
        description="Prevent piping curl output into a shell",
        category=RuleCategory.SECURITY,
        platforms=[Platform.ALL],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bcurl\b.*\|\s*(?:sudo\s+)?(?:ba|z|da)?sh\b"),
                action="deny",
                reason="Executing remote scripts without review",
                safe_alternatives=["curl -o script.sh <url> && less script.sh"],
            ),
        ],
    ),
    NamedRule(
        id="cli/no-wget-pipe-bash",
        description="Prevent piping wget output into a shell",
        category=RuleCategory.SECURITY,
        platforms=[Platform.ALL],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bwget\b.*\|\s*(?:sudo\s+)?(?:ba|z|da)?sh\b"),
                action="deny",
                reason="Executing remote scripts without review",
                safe_alternatives=["wget -O script.sh <url> && less script.sh"],
            ),
        ],
    ),
    NamedRule(
        id="cli/no-credential-echo",
        description="Prevent printing credential variables",
        category=RuleCategory.PRIVACY,
        platforms=[Platform.ALL],
        cli_rules=[
            CliRule(
                match=re.compile(r"\b(?:echo|printf)\b.*\$\{?\w*(?:PASSWORD|SECRET|TOKEN|KEY)\w*", re.IGNORECASE),
                action="deny",
                reason="Printing credentials into the transcript",
            ),
        ],
    ),
    NamedRule(
        id="cli/no-curl-with-password",
        description="Prevent passing passwords on the curl command line",
        category=RuleCategory.NETWORK,
        platforms=[Platform.ALL],
        cli_rules=[
            CliRule(
                match=re.compile(r"\bcurl\b.*\s(?:-u|--user)\s+\S+:\S+"),
                action="deny",
                reason="Credentials on the command line end up in shell history",
                safe_alternatives=["curl --netrc-file <file> <url>"],
            ),
        ],
    ),
]


def all_builtin_rules() -> list[NamedRule]:
    """Every built-in rule, platform rules first."""
    return [*linux_rules, *darwin_rules, *windows_rules, *cross_platform_rules]


def register_platform_rules(registry: RuleRegistry) -> None:
    """Register every built-in rule in the given registry."""
    registry.register_all(all_builtin_rules())
