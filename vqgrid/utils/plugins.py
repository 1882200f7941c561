import logging

logger = logging.getLogger(__name__)


def safe_hook_call(hook_caller, *args, **kwargs):
    """Call every implementation of a hook, isolating their failures.

    An exception raised by one plugin is logged and recorded; the remaining
    plugins are still called.

    Example:
        from vqgrid.plugins import vqgrid_pm
        from vqgrid.utils.plugins import safe_hook_call

        results, errors = safe_hook_call(
            vqgrid_pm.hook.context_created, context=context
        )

    Returns:
        A tuple of two dictionaries keyed by plugin name: the results of
        the plugins that succeeded and the exceptions of those that failed.
    """
    result_map = {}
    error_map = {}

    if hook_caller is None:
        return result_map, error_map

    try:
        hook_impls = hook_caller.get_hookimpls()
    except AttributeError:
        logger.debug(
            "Hook %s does not exist or is not callable, skipping",
            getattr(hook_caller, "name", str(hook_caller)),
        )
        return result_map, error_map

    for impl in hook_impls:
        try:
            result_map[impl.plugin_name] = impl.function(*args, **kwargs)
        except Exception as e:
            error_map[impl.plugin_name] = e
            logger.error(
                "Error in %s hook of the %s plugin",
                hook_caller.name,
                impl.plugin_name,
                exc_info=True,
            )

    return result_map, error_map
