"""
L0 Data — Built-in defaults for the component catalog.

Package lists, version pins, release locators, the shell env
snippet and the git aliases.  Pure data, no logic.  Anything here
can be overridden from the settings file (see ``config/loader.py``).
"""

from __future__ import annotations

from typing import Final

# ── Packages ────────────────────────────────────────────────────

APT_PACKAGES: Final[list[str]] = [
    "jq",
    "yq",
    "htop",
    "zoxide",
    "ripgrep",
    "tmux",
    "lazygit",
    "httpie",
    "sqlite3",
]

GH_REPOSITORY: Final[dict[str, str]] = {
    "keyring_url": "https://cli.github.com/packages/githubcli-archive-keyring.gpg",
    "keyring_path": "/usr/share/keyrings/githubcli-archive-keyring.gpg",
    "sources_path": "/etc/apt/sources.list.d/github-cli.list",
    "sources_line": (
        "deb [arch={dpkg_arch} signed-by=/usr/share/keyrings/githubcli-archive-keyring.gpg] "
        "https://cli.github.com/packages stable main"
    ),
}

# ── Release archives ────────────────────────────────────────────

# platform.machine() → asset naming used by each project
_ARM64_AMD64: Final[dict[str, str]] = {"aarch64": "arm64", "arm64": "arm64", "x86_64": "amd64"}
_GNU_TRIPLE: Final[dict[str, str]] = {"aarch64": "aarch64", "arm64": "aarch64", "x86_64": "x86_64"}

NEOVIM_ARCHIVE: Final[dict] = {
    "url": "https://github.com/neovim/neovim/releases/download/v{version}/nvim-linux-{arch}.tar.gz",
    "version": "0.11.4",
    "arch_names": {"aarch64": "arm64", "arm64": "arm64", "x86_64": "x86_64"},
    "checksum_url": "https://github.com/neovim/neovim/releases/download/v{version}/shasum.txt",
    "members": {
        "bin/nvim": "bin/nvim",
        "share/nvim": "share/nvim",
        "lib/nvim": "lib/nvim",
    },
}

BAT_ARCHIVE: Final[dict] = {
    "url": (
        "https://github.com/sharkdp/bat/releases/download/v{version}/"
        "bat-v{version}-{arch}-unknown-linux-gnu.tar.gz"
    ),
    "version": "0.25.0",
    "arch_names": _GNU_TRIPLE,
    "members": {"bat": "bin/bat"},
}

FZF_ARCHIVE: Final[dict] = {
    "url": "https://github.com/junegunn/fzf/releases/download/v{version}/fzf-{version}-linux_{arch}.tar.gz",
    "version": "0.65.2",
    "arch_names": _ARM64_AMD64,
    "checksum_url": "https://github.com/junegunn/fzf/releases/download/v{version}/fzf_{version}_checksums.txt",
    "members": {"fzf": "bin/fzf"},
}

EZA_ARCHIVE: Final[dict] = {
    "url": "https://github.com/eza-community/eza/releases/download/v{version}/eza_{arch}-unknown-linux-gnu.tar.gz",
    "version": "0.23.0",
    "arch_names": _GNU_TRIPLE,
    "members": {"eza": "bin/eza"},
}

ASDF_ARCHIVE: Final[dict] = {
    "url": "https://github.com/asdf-vm/asdf/releases/download/v{version}/asdf-v{version}-linux-{arch}.tar.gz",
    "version": "0.18.0",
    "arch_names": _ARM64_AMD64,
    "members": {"asdf": "bin/asdf"},
    "data_dirs": [".asdf"],
    "post_install": [
        ["asdf", "plugin", "add", "nodejs"],
        ["asdf", "install", "nodejs", "latest"],
        ["asdf", "set", "-u", "nodejs", "latest"],
    ],
}

# ── Remote installer scripts ────────────────────────────────────

ATUIN_SCRIPT: Final[dict] = {
    "url": "https://setup.atuin.sh",
    "binaries": [".atuin/bin/atuin"],
    "user_paths": [".atuin", ".cargo/bin/atuin", ".config/atuin"],
    "data_dirs": [".local/share/atuin"],
}

UV_SCRIPT: Final[dict] = {
    "url": "https://astral.sh/uv/install.sh",
    "binaries": [".local/bin/uv", ".local/bin/uvx"],
    "user_paths": [".cache/uv"],
    "data_dirs": [".local/share/uv"],
}

# ── Editor starter config ───────────────────────────────────────

LAZYVIM_CLONE: Final[dict] = {
    "repo": "https://github.com/LazyVim/starter",
    "dest": ".config/nvim",
    "user_paths": [".local/share/nvim", ".local/state/nvim", ".cache/nvim"],
}

# ── Shell environment ───────────────────────────────────────────

SHELL_ENV_CONTENT: Final[str] = """\
# myrpi environment: managed file, edits are lost on reinstall
export PATH="$HOME/.local/bin:$HOME/.atuin/bin:${ASDF_DATA_DIR:-$HOME/.asdf}/shims:$PATH"
export EDITOR=nvim

command -v eza >/dev/null 2>&1 && alias ls='eza --group-directories-first'
command -v eza >/dev/null 2>&1 && alias ll='eza -l --git'
command -v bat >/dev/null 2>&1 && alias cat='bat --paging=never'
command -v nvim >/dev/null 2>&1 && alias vim='nvim'

command -v zoxide >/dev/null 2>&1 && eval "$(zoxide init bash)"
command -v fzf >/dev/null 2>&1 && eval "$(fzf --bash)"
command -v atuin >/dev/null 2>&1 && eval "$(atuin init bash)"
"""

SHELL_MARKER: Final[str] = "# Source myrpi environment"

# ── Git aliases ─────────────────────────────────────────────────

GIT_ALIASES: Final[dict[str, str]] = {
    "s": "status -sb",
    "co": "checkout",
    "publish": "!git push -u origin $(git branch-name)",
    "branch-name": "rev-parse --abbrev-ref HEAD",
    "pull-current": "!git pull origin $(git branch-name)",
    "lol": "log --graph --decorate --pretty=oneline --abbrev-commit --all",
    "fzf-branch": "!git branch --all --color=never | grep -v HEAD | fzf | sed 's#remotes/[^/]*/##' | tr -d ' *'",
    "fzf-co": "!git checkout $(git fzf-branch)",
    "l": "log --oneline -20",
    "com": "checkout main",
    "br": "branch",
    "unstage": "reset HEAD --",
    "sha": "rev-parse HEAD",
    "shortsha": "rev-parse --short HEAD",
}
