# dirlistener

`dirlistener` watches directories for file-system events and runs a shell
command whenever an event matches one of your rules. Events are collected
through the `watchdog` library.

## Installation

```
pip install .
```

## Running

```
dirlistener                      # use the default rules file, /etc/listener.conf
dirlistener -c rules.json        # use another rules file
dirlistener --debug              # stay in the foreground and report each event
dirlistener --help               # print the option summary
```

Without `--debug`, standard input, output and error are redirected to
`/dev/null` and the listener forks into the background. With `--debug` it
stays in the foreground and prints each watch it registers, each event it
acts on and each command it starts. Ctrl-C stops a foreground listener.

An unreadable or invalid rules file makes the command print the reason and
exit with status 1.

## Rules file

The rules file is a JSON object whose first member is a non-empty array.
Each element of that array is one rule, and every value in a rule must be a
string:

```json
{
  "rules": [
    {
      "description": "Rebuild thumbnails for new pictures",
      "target": "/srv/pictures",
      "watches": "CLOSE_WRITE MOVED_TO",
      "spawn": "make-thumbnail $ENTRY",
      "lookat": "FILES",
      "regex": "\\.(jpe?g|png)$",
      "depth": "2"
    }
  ]
}
```

| key           | required | meaning                                                          |
|---------------|----------|------------------------------------------------------------------|
| `description` | no       | free text, ignored                                               |
| `target`      | yes      | directory to watch                                               |
| `watches`     | yes      | event names: `ACCESS`, `MODIFY`, `ATTRIB`, `CLOSE_WRITE`, `CLOSE_NOWRITE`, `OPEN`, `MOVED_FROM`, `MOVED_TO`, `CREATE`, `DELETE`, `DELETE_SELF`, `MOVE_SELF` |
| `spawn`       | yes      | shell command, run with `/bin/sh -c`                             |
| `lookat`      | yes      | `DIRS`, `FILES` or `SYMLINKS` (case-insensitive)                 |
| `regex`       | no       | Python regular expression searched for in the entry name         |
| `depth`       | no       | how many levels of subdirectories to watch, 0 to 127             |

Keys are case-insensitive. Any key that is not in this table makes the file
invalid. Event names in `watches` are matched as substrings, so
`DELETE_SELF` also selects `DELETE`.

Two variables can be used in `spawn` (the first occurrence of each in every
word is replaced):

* `$ENTRY`: the full path of the entry that triggered the event
  (`<target>/<name>`).
* `$ENTRY_RELATIVE`: the name of the entry relative to the watched directory.

An event is acted on only if its name matches `regex` (when given) and the
entry is of the kind named by `lookat`. For `DELETE_SELF` and `MOVE_SELF`
events the entry is the watched directory itself.

Where a rule has a non-zero `depth`, each subdirectory is also watched, down
to that many levels. The rule's tree of watches is rebuilt whenever a create,
delete or move event in it is acted on.

## Using it as a library

```python
from dirlistener.rules import read_config
from dirlistener.monitor import Listener, WatchdogBackend

watches = read_config("rules.json")
with Listener(WatchdogBackend(), debug=True, runner=None) as listener:
    listener.load(watches)
    listener.run()
```

* `dirlistener.rules` holds `Watch`, `LookAt`, `RuleError`, and the parsing
  functions `read_config()`, `parse_config()` and `parse_rule()`; also
  `build_command()`, `tokenize_command()` and `expand_token()` for the
  `spawn` variables.
* `dirlistener.monitor` holds `Listener`, `Event` and `WatchdogBackend`.
  `Listener.handle_event()` acts on a single `Event`; a `runner` callable,
  given the command line as a string, can replace the default of running it
  with `/bin/sh -c`.
* `dirlistener.watchtable.WatchTable` looks watches up by descriptor.
* `dirlistener.masks` provides the `EventMask` flags, with `parse_masks()`
  to turn rule text into a mask and `mask_name()` to turn a mask into
  readable text.

## Limitations

Events come from `watchdog`, which reports creation, modification, opening,
closing, deletion and moves. `ACCESS` and `ATTRIB` rules are accepted but the
backend never produces those events.