"""Usage text."""

USAGE = """\
description: tooling for JavaScript workspaces

usage: ryt [--version|-v] [--help|-h] [--path=<path>|-p <path>] [--grep=<pattern>] <command> [<args>]
    --version, -v                 print version
    --help, -h                    print usage
    --path=<path>, -p <path>      specify entrypoint path, `:` separated
    --grep=<pattern>              filter for package names that match pattern

commands:

Get info
    list, ls                      list packages
    status, s                     get packages' file status
    branch, b                     get packages' branches
    log, lg                       get packages' commit history
        -<number>, -n <number>    number of commits to display per package
        --max-count=<number>

Manage dependencies
    install, i                    install packages' registered dependencies
    link, ln                      symlink all packages that are dependencies of other packages
    clean                         remove packages' ignored files, including node_modules
        -f                        remove all ignored and untracked files

Sync branches and remotes
    fetch                         fetch all branches of all remotes
    merge                         fast-forward current branches to their upstream
    pull                          fetch+merge remote into current branch
    push                          push current branches to remote

Control versions
    checkout, ch <branch>         switch modules to existing branch, noop if non-existing branch
        -b                        switch modules to new branch, keep if existing branch
        -B                        switch modules to new branch, overwrite if existing branch
        --dry-run, -n             noop, showing output
    delete <branch>               deletes branch from packages

Release
    dist <major|minor|patch>      bump version and publish, skip unchanged packages
        --dry-run, -n             noop, showing output

environment:
    RYT_PATH                      entrypoint path(s) when --path is not given
    HOME                          fallback entrypoint path
"""
