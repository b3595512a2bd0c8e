# agentverk

Small building blocks for tools that run throwaway QEMU virtual machines
for AI agents. The package has four modules. One talks to a running QEMU
over its QMP socket. One holds provisioning step records and shell
helpers. One renders a short markdown summary of a VM for agents working
inside it. One keeps track of disk templates on the host.

## Installation

```
pip install agentverk
```

The only third-party dependency is `tomli-w`, which writes template
metadata.

## Modules

### `agentverk.qmp`

- `open_qmp(socket_path)` connects to a QMP Unix socket. It reads the
  greeting and sends `qmp_capabilities`, then returns a `QmpClient`.
- `QmpClient.execute(command)` sends `{"execute": command}` and returns
  the reply.
- `QmpClient.execute_hmp(command)` sends a human-monitor command line
  through `human-monitor-command`. Any non-blank monitor output counts as
  a failure.
- `QmpClient.read_response()` reads the next reply. It skips
  asynchronous `event` messages.
- `QmpClient.send_raw(msg)` writes a raw JSON line.
- `QmpClient.close()` closes the connection. The client is also a
  context manager.

Connection, protocol and command failures raise `QmpError`.

```python
from agentverk.qmp import open_qmp

with open_qmp("/tmp/vms/dev/qmp.sock") as qmp:
    qmp.execute("system_powerdown")
```

### `agentverk.steps`

- `ProvisionStep` has the fields `source`, `script` and `run`.
- `FileEntry` has the fields `source`, `dest` and `optional`.
- `Phase` lists the first-boot phases: `SSH_WAIT`, `FILES`, `SETUP` and
  `PROVISION`.
- `ProvisionState` records `phase`, `index`, `total` and `error`.
- `step_label(step)` returns a short label for a step. The include source
  comes first, then the script path, then the first line of the inline
  script. An inline line longer than 40 characters is cut to 40 and
  followed by `...`. A step with none of these gets `"unknown"`.
- `shell_escape(s)` wraps a string in single quotes for a POSIX shell,
  using the `'\''` idiom for embedded quotes.
- `parent_dir_of(path)` returns the part of the path before the last `/`,
  or `"."` when there is no `/`.

```python
from agentverk.steps import ProvisionStep, shell_escape, step_label

print(step_label(ProvisionStep(run="apt-get install -y ripgrep")))
print("bash -c " + shell_escape("echo it's done"))
```

### `agentverk.system_info`

`render(profile, arch)` turns a `SystemProfile` into the markdown body of
`~/.agv/system.md`. A `SystemProfile` has `os_family`, `user`,
`config_notes`, `mixins_applied` and `mixin_notes`, where `mixin_notes` is
a list of `MixinNotes`. The output always has a header, the OS family with
the architecture, and the user. After that comes a "This VM" section for
the config notes. Then comes a "Mixins" section that lists every applied
mixin. A mixin's first note goes on the same line as its name, and any
further notes become sub-bullets.

```python
from agentverk.system_info import MixinNotes, SystemProfile, render

profile = SystemProfile(
    os_family="debian",
    user="agent",
    mixins_applied=["devtools", "docker"],
    mixin_notes=[MixinNotes("docker", ["service enabled at boot"])],
)
print(render(profile, "x86_64"))
```

### `agentverk.template`

A template is a `<name>.qcow2` disk in a templates directory with a
`<name>.toml` metadata file next to it. Every function takes the
directories it works on as arguments.

- `TemplateMetadata` holds the template's settings. If `os_family` is
  missing from the file, it defaults to `"debian"`.
- `load_metadata(path)` and `save_metadata(meta, path)` read and write the
  TOML file.
- `find_template_dependents(instances_dir, template_name)` returns the
  sorted names of instance directories whose `config.toml` has a
  `template_name` equal to the given name.
- `list_templates(templates_dir, instances_dir)` returns a `TemplateInfo`
  for each metadata file, sorted by name. Each one carries its
  dependents. `TemplateInfo.to_dict()` gives the JSON shape, with the keys
  `name`, `source_vm`, `memory`, `cpus`, `disk` and `dependents`.
- `remove_template(templates_dir, instances_dir, name)` deletes the disk
  and the metadata file. It raises `TemplateNotFound` when the disk is
  missing. It raises `TemplateHasDependents` while any VM still uses the
  template.

All of these errors derive from `TemplateError`. `TemplateAlreadyExists`
is there for callers that create templates.

## What this package does not do

- It does not start, stop, suspend or kill QEMU processes.
- It does not build QEMU command lines.
- It does not run provisioning steps over SSH.
- It does not create templates from VMs or clone VMs from templates.
- It has no command-line program.

`agentverk.qmp` can only control a QEMU that is already running.

## Running the tests

```
pip install agentverk[test]
pytest
```