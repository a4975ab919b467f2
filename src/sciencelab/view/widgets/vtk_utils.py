"""
VTK and Geometry Utilities
Helper functions building the small helper datasets used by the scenes.
"""
import numpy as np
import numpy.typing as npt
import pyvista as pv


class VtkUtils:
    @staticmethod
    def build_ground_grid(size: float = 10.0, divisions: int = 10, y: float = 0.0) -> pv.PolyData:
        """
        Create a square line grid in the XZ plane centered at the origin.

        Args:
            size: Edge length of the grid.
            divisions: Number of cells along each edge.
            y: Height of the grid plane.

        Returns:
            A PyVista PolyData made of 2-point line cells.
        """
        half = size / 2.0
        ticks = np.linspace(-half, half, divisions + 1)

        n_lines = 2 * len(ticks)
        points = np.empty((n_lines * 2, 3), dtype=float)
        cells = np.empty(n_lines * 3, dtype=int)  # [2, id0, id1] repeated

        pid, cid = 0, 0
        # lines parallel to Z
        for x in ticks:
            points[pid] = (x, y, -half)
            points[pid + 1] = (x, y, half)
            cells[cid:cid + 3] = (2, pid, pid + 1)
            pid += 2
            cid += 3
        # lines parallel to X
        for z in ticks:
            points[pid] = (-half, y, z)
            points[pid + 1] = (half, y, z)
            cells[cid:cid + 3] = (2, pid, pid + 1)
            pid += 2
            cid += 3

        return pv.PolyData(points, lines=cells)

    @staticmethod
    def segment_to_polydata(start: npt.ArrayLike, end: npt.ArrayLike) -> pv.PolyData:
        """A single line segment between two 3D points."""
        points = np.vstack([np.asarray(start, dtype=np.float64), np.asarray(end, dtype=np.float64)])
        return pv.PolyData(points, lines=np.array([2, 0, 1]))

    @staticmethod
    def translation_matrix(offset: npt.ArrayLike) -> npt.NDArray[np.float64]:
        m = np.eye(4)
        m[:3, 3] = np.asarray(offset, dtype=np.float64)
        return m
