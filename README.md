# omnix

A Python library for working with Nix: it drives the `nix` and `nix-store`
commands, reads back what they report, and provides the pieces for running
continuous-integration steps over the flakes and sub-flakes of a project.

Anything that talks to Nix needs a working `nix` (and `nix-store`) on the
`PATH`; the parsing and data types work without it. Every command that is run
is logged through the standard `logging` module at INFO level as a
copyable shell command line.

## What is in it

`omnix.nix` covers Nix itself:

- `command` – `NixCmd`, the global options for `nix` (extra experimental
  features, extra access tokens, `--refresh`), and the calls that run it:
  `run_with`, `run_with_returning_stdout`, `run_with_args_expecting_json`
  and `run_with_args_expecting_fromstr`. Errors are `NixCmdError` and its
  subclasses `CommandError`, `ProcessFailed` and `FromStrError`.
- `version` – `NixVersion`, parsed from `nix --version` or a bare `X.Y.Z`.
- `config` – `NixConfig`, read from `nix config show --json` (or
  `nix show-config --json` on Nix older than 2.20), with `ConfigVal` and
  `TrustedUserValue`.
- `env` and `info` – `NixEnv`, the environment Nix runs in (user, groups, OS,
  disk and memory sizes, installer), and `NixInfo`, which gathers version,
  config and environment together. `detsys_installer` detects the DetSys
  nix-installer at `/nix/nix-installer`.
- `flake_url` – `FlakeUrl` and `FlakeAttr`: split and set the `#attr` part,
  find the local path of a path-like URL, point at a sub-flake.
- `system`, `system_list` – `System` and `Arch`, and `SystemsList` /
  `SystemsListFlakeRef` for lists of systems named by a flake.
- `flake_command` – `FlakeOptions`, `OutPath`, and `run`, `develop`, `build`,
  `lock` and `check`.
- `flake_eval`, `flake_metadata`, `flake_schema`, `flake` – `nix eval`,
  `nix flake metadata`, and the outputs of a flake by schema (`FlakeSchemas`,
  `FlakeOutputs`, `Val`, `Type`, `Flake`).
- `store_path`, `store_uri`, `store_command`, `copy` – `StorePath`, `ssh://`
  store URIs (`StoreURI`), `NixStoreCmd` for `nix-store` queries and GC roots,
  and `nix_copy`.

`omnix.ci` covers CI for a flake project:

- `subflake` – `SubflakeConfig` and `SubflakesConfig`, read from JSON.
- `steps`, `step_build`, `step_custom`, `lock`, `devour_flake` – the
  lockfile, build, flake-check and custom (app or devshell) steps, and the
  devour-flake build they use.
- `run` – `RunCommand`, the options of a CI run, with `to_cli_args`, and
  `RunResult`, its JSON results.
- `pull_request`, `flake_ref` – GitHub pull-request references and
  `FlakeRef`, which accepts a pull-request page or a flake URL.
- `matrix` – `GitHubMatrix`, a GitHub Actions matrix of sub-flakes by system.

## Environment variables

Some parts look up flakes through environment variables:

- `NIX_SYSTEMS` – a JSON object from system name to flake URL, used by
  `system_list` to resolve known systems without evaluating anything.
- `DEFAULT_FLAKE_SCHEMAS` and `INSPECT_FLAKE` – needed by
  `FlakeSchemas.from_nix`.
- `DEVOUR_FLAKE` – the devour-flake source, needed by the build step.

## Examples

Working with flake URLs needs no Nix at all:

```python
from omnix.nix.flake_url import FlakeUrl

url = FlakeUrl.parse("github:example/project#extra-tests")
base, attr = url.split_attr()
print(base)                        # github:example/project
print(attr.as_list())              # ['extra-tests']
print(url.with_attr("default"))    # github:example/project#default
print(base.sub_flake_url("dev"))   # github:example/project?dir=dev
```

Versions and store URIs:

```python
from omnix.nix.version import NixVersion
from omnix.nix.store_uri import StoreURI

print(NixVersion.parse("nix (Nix) 2.13.0"))    # 2.13.0
print(StoreURI.parse("ssh://user@builder"))     # ssh://user@builder
```

Asking Nix itself:

```python
from omnix.nix.command import NixCmd
from omnix.nix.version import NixVersion

cmd = NixCmd()
cmd.with_flakes()
print(NixVersion.from_nix(cmd))
```

A failing `nix` run raises `ProcessFailed`, which carries the `exit_code` and
`stderr` of the process; JSON output that does not decode raises
`NixCmdError`, and output the given parse function rejects raises
`FromStrError`.

A GitHub Actions matrix for a project's sub-flakes:

```python
from omnix.ci.matrix import GitHubMatrix
from omnix.ci.subflake import SubflakesConfig
from omnix.nix.system import System

subflakes = SubflakesConfig.from_json({"ROOT": {"dir": "."}})
matrix = GitHubMatrix.build([System.parse("x86_64-linux")], subflakes)
print(matrix.to_json())
# {'include': [{'system': 'x86_64-linux', 'subflake': 'ROOT'}]}
```

A pull-request page on GitHub can stand in for a flake: `FlakeRef.parse`
recognises it, and `to_flake_url` asks the GitHub API for the branch behind it.

## What it does not do

- There is no command-line program. `RunCommand` holds the options of a CI
  run and can render them as arguments, but nothing here parses a command
  line or drives a whole run: to run CI, build the configuration with
  `SubflakesConfig.from_json` and call `Steps.run` for each sub-flake.
- It does not run CI on a remote store over SSH; `RunCommand.on` is only
  carried along and rendered by `to_cli_args`.
- It does not read a project's CI configuration out of its `flake.nix`; the
  configuration must be given as already-decoded JSON.
- It performs no health checks of the Nix installation beyond gathering
  the information in `NixInfo`.