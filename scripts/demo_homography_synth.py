import numpy as np

from homogcv.estimator import EstimatorConfig, find_homography
from homogcv.warp import transform_points


def main() -> None:
    rng = np.random.default_rng(0)

    # True homography (mild perspective)
    H_true = np.array(
        [[1.05, 0.02, 15.0],
         [-0.01, 0.98, -8.0],
         [1e-4, -5e-5, 1.0]],
        dtype=np.float64,
    )

    # Generate inlier points
    n_in = 200
    pts0 = rng.uniform([0, 0], [640, 480], size=(n_in, 2)).astype(np.float64)
    pts1 = transform_points(H_true, pts0)

    # Add Gaussian noise (pixel noise)
    pts1 += rng.normal(0.0, 0.8, size=pts1.shape)

    # Add outliers (wrong matches)
    n_out = 80
    o0 = rng.uniform([0, 0], [640, 480], size=(n_out, 2)).astype(np.float64)
    o1 = rng.uniform([0, 0], [640, 480], size=(n_out, 2)).astype(np.float64)

    pts0_all = np.vstack([pts0, o0])
    pts1_all = np.vstack([pts1, o1])

    print("H_true:\n", H_true)
    for kind in ("ransac", "lmeds"):
        cfg = EstimatorConfig(kind=kind, inlier_threshold=3.0, iterations=1000, seed=42)
        res = find_homography(pts0_all, pts1_all, config=cfg)

        print(f"\n[{kind}] H_est:\n", res.model)
        print("num_inliers:", res.num_inliers, "/", pts0_all.shape[0])
        print("best_iteration:", res.best_iteration, "score:", res.score)
        print("threshold:", res.threshold)


if __name__ == "__main__":
    main()
