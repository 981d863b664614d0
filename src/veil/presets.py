"""
Ready-made rule sets and presets.

Rule sets can be mixed into custom configs; presets are complete
VeilConfigs usable directly or as the first argument of merge_configs.

Presets:
    PRESET_MINIMAL      .env files, passwords and tokens only
    PRESET_RECOMMENDED  Hidden dirs, sensitive files/vars, dangerous commands
    PRESET_STRICT       Recommended plus a catch-all env mask
    PRESET_CI           Tuned for CI runners (CI variables visible, no force push)
"""

import re

from veil.compose import merge_configs
from veil.schema import CliRule, EnvRule, FileRule, VeilConfig


# =============================================================================
# Rule Sets
# =============================================================================

COMMON_HIDDEN_DIRS: list[FileRule] = [
    FileRule(match="node_modules", action="deny", reason="Dependencies are too large for context"),
    FileRule(match=".git", action="deny", reason="Version control internals"),
    FileRule(match="dist", action="deny", reason="Build output"),
    FileRule(match="build", action="deny", reason="Build output"),
    FileRule(match=".next", action="deny", reason="Framework cache"),
    FileRule(match="coverage", action="deny", reason="Coverage reports"),
    FileRule(match="__pycache__", action="deny", reason="Bytecode cache"),
    FileRule(match=".venv", action="deny", reason="Virtual environment"),
]

SENSITIVE_FILES: list[FileRule] = [
    FileRule(
        match=re.compile(r"(?:^|[\\/])\.env(?:\.|$)"),
        action="deny",
        reason="Environment files contain secrets",
    ),
    FileRule(match=re.compile(r"\.(?:pem|key)$"), action="deny", reason="Private key material"),
    FileRule(match=re.compile(r"(?:^|[\\/])id_(?:rsa|dsa|ecdsa|ed25519)$"), action="deny", reason="SSH private key"),
    FileRule(match=re.compile(r"(?:^|[\\/])\.(?:npmrc|pypirc|netrc)$"), action="deny", reason="Package registry credentials"),
    FileRule(match=re.compile(r"credentials(?:\.json)?$", re.IGNORECASE), action="deny", reason="Credentials file"),
]

SENSITIVE_ENV_VARS: list[EnvRule] = [
    EnvRule(match=re.compile(r"PASS(?:WORD|WD)", re.IGNORECASE), action="deny", reason="Passwords are never exposed"),
    EnvRule(match="DATABASE_URL", action="deny", reason="Connection strings embed credentials"),
    EnvRule(match=re.compile(r"^AWS_"), action="mask"),
    EnvRule(match=re.compile(r"^AZURE_"), action="mask"),
    EnvRule(match=re.compile(r"^(?:GCP_|GOOGLE_)"), action="mask"),
    EnvRule(match=re.compile(r"TOKEN", re.IGNORECASE), action="mask"),
    EnvRule(match=re.compile(r"SECRET|API_KEY|PRIVATE_KEY", re.IGNORECASE), action="mask"),
]

DANGEROUS_COMMANDS: list[CliRule] = [
    CliRule(
        match=re.compile(r"\brm\s+-[a-zA-Z]*[rR][a-zA-Z]*\s+/(?:\*|\s|$)"),
        action="deny",
        reason="Recursive delete from the filesystem root",
        safe_alternatives=["rm -ri ./path/to/dir", "trash ./path/to/dir"],
    ),
    CliRule(
        match=re.compile(r"\bchmod\s+(?:-\S+\s+)*0?777\b"),
        action="deny",
        reason="World-writable permissions",
        safe_alternatives=["chmod 755 <path>", "chmod 644 <file>"],
    ),
    CliRule(
        match=re.compile(r"\b(?:curl|wget)\b.*\|\s*(?:sudo\s+)?(?:ba|z|da)?sh\b"),
        action="deny",
        reason="Executing remote scripts without review",
        safe_alternatives=["curl -o script.sh <url> && less script.sh"],
    ),
    CliRule(match=re.compile(r"\bmkfs(?:\.\w+)?\s"), action="deny", reason="Formatting a device"),
    CliRule(match=re.compile(r"\bdd\s+.*\bof=/dev/"), action="deny", reason="Writing directly to a device"),
    CliRule(
        match=re.compile(r":\s*\(\s*\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"),
        action="deny",
        reason="Fork bomb",
    ),
]

CREDENTIAL_LEAK_COMMANDS: list[CliRule] = [
    CliRule(
        match=re.compile(r"\bcurl\b.*\s(?:-u|--user)\s+\S+:\S+"),
        action="deny",
        reason="Credentials on the command line end up in shell history",
        safe_alternatives=["curl --netrc-file <file> <url>"],
    ),
    CliRule(
        match=re.compile(r"\b(?:echo|printf)\b.*\$\{?\w*(?:PASSWORD|SECRET|TOKEN|KEY)\w*", re.IGNORECASE),
        action="deny",
        reason="Printing credentials into the transcript",
    ),
    CliRule(
        match=re.compile(r"\b(?:cat|less|more|head|tail)\s+(?:\S+/)?\.env\b"),
        action="deny",
        reason="Reading environment files through the shell",
    ),
]


# =============================================================================
# Presets
# =============================================================================

PRESET_MINIMAL = VeilConfig(
    file_rules=[FileRule(match=".env", action="deny", reason="Environment files contain secrets")],
    env_rules=[
        EnvRule(match=re.compile(r"PASS(?:WORD|WD)", re.IGNORECASE), action="deny", reason="Passwords are never exposed"),
        EnvRule(match=re.compile(r"TOKEN", re.IGNORECASE), action="mask"),
    ],
    cli_rules=[DANGEROUS_COMMANDS[0]],
)

PRESET_RECOMMENDED = VeilConfig(
    file_rules=[*COMMON_HIDDEN_DIRS, *SENSITIVE_FILES],
    env_rules=SENSITIVE_ENV_VARS,
    cli_rules=[*DANGEROUS_COMMANDS, *CREDENTIAL_LEAK_COMMANDS],
)

# Variables the strict preset leaves readable before masking everything else
_STRICT_VISIBLE_ENV = re.compile(r"^(?:PATH|HOME|USER|SHELL|LANG|LC_\w+|TERM|PWD|TZ|NODE_ENV|PYTHONPATH)$")

PRESET_STRICT = merge_configs(
    PRESET_RECOMMENDED,
    VeilConfig(
        file_rules=[
            FileRule(match=re.compile(r"secrets?", re.IGNORECASE), action="deny", reason="Secrets directory"),
            FileRule(match=re.compile(r"(?:^|[\\/])\.(?:ssh|aws|gnupg|kube|docker)(?:[\\/]|$)"), action="deny", reason="Credential store"),
        ],
        env_rules=[
            EnvRule(match=_STRICT_VISIBLE_ENV, action="allow"),
            EnvRule(match=re.compile(r".+"), action="mask"),
        ],
        cli_rules=[
            CliRule(match=re.compile(r"^\s*sudo\s"), action="deny", reason="Elevated privileges are not allowed"),
            CliRule(
                match=re.compile(r"\bgit\s+push\b(.*?)\s--force(?!-with-lease)\b"),
                action="rewrite",
                replace=r"git push\1 --force-with-lease",
                reason="Force pushes are rewritten to --force-with-lease",
            ),
        ],
    ),
)

PRESET_CI = VeilConfig(
    file_rules=[*SENSITIVE_FILES],
    env_rules=[
        *SENSITIVE_ENV_VARS,
        # Nothing here masks by default, so these only matter once a later
        # catch-all mask is merged after the preset. Secret-bearing GITHUB_*
        # names stay masked by the rules above.
        EnvRule(match="CI", action="allow"),
        EnvRule(match=re.compile(r"^GITHUB_"), action="allow"),
        EnvRule(match=re.compile(r"^RUNNER_"), action="allow"),
    ],
    cli_rules=[
        *DANGEROUS_COMMANDS,
        CliRule(
            match=re.compile(r"\bgit\s+push\b.*\s(?:--force(?!-with-lease)\b|-f\b)"),
            action="deny",
            reason="Force pushes from CI rewrite shared history",
            safe_alternatives=["git push --force-with-lease"],
        ),
        CliRule(match=re.compile(r"\bnpm\s+publish\b"), action="deny", reason="Publishing from an agent session"),
    ],
)

PRESETS: dict[str, VeilConfig] = {
    "minimal": PRESET_MINIMAL,
    "recommended": PRESET_RECOMMENDED,
    "strict": PRESET_STRICT,
    "ci": PRESET_CI,
}
