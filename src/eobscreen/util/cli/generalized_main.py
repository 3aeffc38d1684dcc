import sys
import inspect
import argparse

def generalized_main(fcn,
                     argv=None,
                     manual_arg_types=None,
                     manual_arg_nargs=None):
    """
    Build a command line argument parser from the signature of `fcn`, parse
    the arguments, and call `fcn` with them.

    Arguments without defaults become positional arguments. Arguments with
    defaults become `--flags` whose type is inferred from the default. Bool
    defaults become store_true/store_false switches. Arguments that default
    to None are read as strings unless `manual_arg_types` says otherwise.

    Parameters
    ----------
    fcn: callable
        function to run.
    argv: iterable
        arguments to parse. if None, use sys.argv[1:]
    manual_arg_types: dict
        dictionary keying arguments to types. This overrides the types inferred
        from the signature.
    manual_arg_nargs: dict
        dictionary keying arguments to nargs.

    Returns
    -------
    object
        whatever `fcn` returns
    """

    if argv is None:
        argv = sys.argv[1:]

    if manual_arg_types is None:
        manual_arg_types = {}

    if manual_arg_nargs is None:
        manual_arg_nargs = {}

    parser = argparse.ArgumentParser(prog=fcn.__name__,
                                     description=inspect.getdoc(fcn),
                                     formatter_class=argparse.RawTextHelpFormatter)

    param = inspect.signature(fcn).parameters
    for p in param:

        if param[p].kind in (param[p].VAR_POSITIONAL, param[p].VAR_KEYWORD):
            continue

        default = param[p].default
        required = default is param[p].empty

        if required:
            arg_type = None
        elif default is None:
            arg_type = str
        else:
            arg_type = type(default)

        if p in manual_arg_types:
            arg_type = manual_arg_types[p]

        nargs = manual_arg_nargs.get(p, None)

        if required:
            parser.add_argument(p,type=arg_type,nargs=nargs)
            continue

        arg_name = f"--{p}"
        if arg_type is bool:
            if default is True:
                parser.add_argument(arg_name,action="store_false")
            else:
                parser.add_argument(arg_name,action="store_true")
        else:
            parser.add_argument(arg_name,type=arg_type,default=default,nargs=nargs)

    args = parser.parse_args(argv)

    return fcn(**vars(args))
