"""
Moving cloud problem generator
==============================

Entry points called by the host simulation at startup:

1. :py:func:`initialize_mesh_data` runs once per process while the mesh is constructed. It resolves
   the problem parameters, reports them from the lead process and returns the immutable
   :py:class:`~parameters.ProblemContext`.
2. :py:func:`problem_generator` runs once per mesh block and writes the block's conserved state.

:py:func:`initialize_mesh` drives step 2 over every block of a :py:class:`~mesh.Mesh`. Blocks share
no mutable state, so they may be processed in any order or concurrently.

Examples
--------

.. code-block:: python

    from moving_cloud import Mesh, ParameterInput, initialize_mesh, initialize_mesh_data

    pin = ParameterInput.from_athinput("moving_cloud.in")
    context = initialize_mesh_data(pin)
    mesh = Mesh.from_input(pin)
    initialize_mesh(mesh, context)
"""
from concurrent.futures import ThreadPoolExecutor, as_completed

from tqdm.auto import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from moving_cloud.assembly import ConservedStateAssembler
from moving_cloud.mesh import Mesh, MeshBlock
from moving_cloud.parameters import (
    HydroPackage,
    ParameterInput,
    ParameterResolver,
    ProblemContext,
    emit_report,
)
from moving_cloud.profiles import ProfileInitializer
from moving_cloud.utilities.config import mcparams
from moving_cloud.utilities.exceptions import tqdmWarningRedirector
from moving_cloud.utilities.logging import devlog, mylog


def initialize_mesh_data(
    pin: ParameterInput, hydro: HydroPackage | None = None, rank: int | None = None
) -> ProblemContext:
    """Resolve the problem parameters for this process.

    Parameters
    ----------
    pin: ParameterInput
        The run configuration.
    hydro: HydroPackage, optional
        The upstream hydro package. Built from ``pin`` if not given.
    rank: int, optional
        This process's rank. Only rank 0 writes the setup report. Detected from the launcher
        environment if not given.

    Returns
    -------
    ProblemContext
        The resolved context, identical on every process for identical input.
    """
    if hydro is None:
        hydro = HydroPackage.from_input(pin)

    resolver = ParameterResolver(pin, hydro)
    parameters = resolver.resolve()
    emit_report(resolver.report(parameters), rank=rank)

    return ProblemContext(hydro=hydro, parameters=parameters)


def problem_generator(block: MeshBlock, context: ProblemContext):
    """Write the initial conserved state of a single mesh block."""
    state = ProfileInitializer(context).primitive_state(block.domain)
    ConservedStateAssembler(context.gamma)(block.cons, block.domain, state)
    devlog.debug("Initialized block %s.", block.gid)


def initialize_mesh(
    mesh: Mesh,
    context: ProblemContext,
    parallel: bool = False,
    max_workers: int | None = None,
):
    """Run :py:func:`problem_generator` on every block of ``mesh``.

    Parameters
    ----------
    mesh: Mesh
        The mesh to initialize.
    context: ProblemContext
        The resolved problem context.
    parallel: bool
        Initialize blocks on a thread pool.
    max_workers: int, optional
        Pool size when ``parallel`` is set.

    Notes
    -----
    Any exception aborts the initialization and propagates to the caller.
    """
    mylog.info("Initializing %s blocks of %s.", len(mesh), mesh)
    disable = mcparams.config.system.preferences.disable_progress_bars

    with logging_redirect_tqdm(loggers=[mylog, devlog]), tqdmWarningRedirector():
        progress = tqdm(
            total=len(mesh),
            desc="[INIT] Moving cloud",
            leave=False,
            disable=disable,
        )
        with progress:
            if parallel:
                with ThreadPoolExecutor(max_workers=max_workers) as pool:
                    futures = [
                        pool.submit(problem_generator, block, context) for block in mesh
                    ]
                    for future in as_completed(futures):
                        try:
                            future.result()
                        except Exception:
                            # Blocks that have not started yet are never initialized.
                            pool.shutdown(wait=True, cancel_futures=True)
                            raise
                        progress.update(1)
            else:
                for block in mesh:
                    problem_generator(block, context)
                    progress.update(1)
