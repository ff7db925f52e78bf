import argparse
import logging
import sys
from typing import List, Optional

import numpy as np
from PIL import Image

from .config import RenderSettings
from .frame_context import FrameContext
from .loader import ModelLoadError, clean_path, load_obj, load_textures
from .pipeline import render_frame
from .renderer import Renderer
from .skybox import Skybox
from .transforms import Vec3

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(prog="celraster",
                                     description="Toon-shaded CPU software renderer")
    parser.add_argument("model", nargs="?", help="path to an .obj file")
    parser.add_argument("--skybox", help="equirectangular panorama image")
    parser.add_argument("--width", type=int, default=700)
    parser.add_argument("--height", type=int, default=700)
    parser.add_argument("--shadow-size", type=int, default=1024)
    parser.add_argument("--no-edges", action="store_true", help="disable outline post-process")
    parser.add_argument("--glass", action="store_true", help="draw glass materials translucent")
    parser.add_argument("--screenshot", metavar="PATH",
                        help="render one frame, save it and exit (no window)")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def prewarm(renderer: Renderer):
    """First call of each kernel triggers numba compilation; pay it up front."""
    tri = np.array([[0.0, 0.0, 0.5], [1.0, 0.0, 0.5], [0.0, 1.0, 0.5]])
    uv = np.zeros((3, 2))
    nrm = np.tile([0.0, 0.0, 1.0], (3, 1))
    clip = np.tile([2.0, 2.0, 0.0, 1.0], (3, 1))
    renderer.clear_shadow()
    renderer.rasterize_shadow(tri)
    renderer.rasterize_triangle(tri, uv, nrm, clip, None, False, 1.0)
    renderer.detect_edges()


def run_viewer(renderer, model, textures, skybox, center, fit_scale):
    """
    Main interactive loop:
      - handle input
      - rebuild the frame context
      - render and present
    """
    import pygame

    settings = renderer.settings
    W, H = settings.width, settings.height

    pygame.init()
    screen = pygame.display.set_mode((W, H))
    pygame.display.set_caption("celraster")
    render_surface = pygame.Surface((W, H))
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("consolas", 16)

    # --- Runtime state (camera/object)
    angle_x = 0.0
    angle_y = 0.0
    pos = Vec3(0.0, 0.0, 10.0)
    dragging = False
    last_mouse = (0, 0)

    running = True
    while running:
        dt = clock.tick(60) / 1000.0

        # ====================================================
        #  Input handling
        # ====================================================
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_o:
                    settings.edge_detection = not settings.edge_detection

            elif event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == 1:
                    dragging = True
                    last_mouse = event.pos

            elif event.type == pygame.MOUSEBUTTONUP:
                if event.button == 1:
                    dragging = False

            elif event.type == pygame.MOUSEMOTION and dragging:
                # Mouse drag rotates the model
                mx, my = event.pos
                lx, ly = last_mouse
                last_mouse = (mx, my)
                angle_y += (mx - lx) * 0.5
                angle_x += (my - ly) * 0.5

        keys = pygame.key.get_pressed()

        # Camera movement
        speed = 5.0 * dt
        if keys[pygame.K_w]:
            pos = pos + Vec3(0.0, speed, 0.0)
        if keys[pygame.K_s]:
            pos = pos - Vec3(0.0, speed, 0.0)
        if keys[pygame.K_a]:
            pos = pos - Vec3(speed, 0.0, 0.0)
        if keys[pygame.K_d]:
            pos = pos + Vec3(speed, 0.0, 0.0)
        if keys[pygame.K_q]:
            pos = pos - Vec3(0.0, 0.0, speed)
        if keys[pygame.K_e]:
            pos = pos + Vec3(0.0, 0.0, speed)

        # Model rotation
        turn = 50.0 * dt
        if keys[pygame.K_i]:
            angle_x += turn
        if keys[pygame.K_k]:
            angle_x -= turn
        if keys[pygame.K_j]:
            angle_y += turn
        if keys[pygame.K_l]:
            angle_y -= turn

        # ====================================================
        #  Render
        # ====================================================
        context = FrameContext.build(settings, angle_x, angle_y, 0.0, pos, center, fit_scale)
        frame = render_frame(renderer, model, textures, context, skybox)

        # surfarray indexes [x, y]
        pygame.surfarray.blit_array(render_surface, frame.swapaxes(0, 1))
        screen.blit(render_surface, (0, 0))

        hud = [
            f"Tris: {model.triangle_count} | Outline(O): {settings.edge_detection} | FPS: {clock.get_fps():.1f}",
            "WASD/QE move | IJKL / LMB drag rotate | O outline | ESC exit",
        ]
        y = 10
        for line in hud:
            screen.blit(font.render(line, True, (235, 235, 235)), (10, y))
            y += 18

        pygame.display.flip()

    pygame.quit()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    path = args.model
    if not path:
        path = input("Drag .OBJ file here: ")
    path = clean_path(path)

    try:
        settings = RenderSettings(width=args.width, height=args.height,
                                  shadow_width=args.shadow_size,
                                  shadow_height=args.shadow_size,
                                  edge_detection=not args.no_edges,
                                  draw_glass=args.glass)
    except ValueError as exc:
        LOGGER.error("Invalid settings: %s", exc)
        return 2

    try:
        model = load_obj(path, settings.glass_opacity if settings.draw_glass else None)
    except ModelLoadError as exc:
        LOGGER.error("%s", exc)
        return 1
    textures = load_textures(model)

    skybox = Skybox()
    if args.skybox:
        skybox.load(args.skybox)

    center, fit_scale = model.fit(settings.model_size)
    renderer = Renderer(settings)
    prewarm(renderer)

    if args.screenshot:
        context = FrameContext.build(settings, center=center, fit_scale=fit_scale)
        frame = render_frame(renderer, model, textures, context, skybox)
        Image.fromarray(frame).save(args.screenshot)
        LOGGER.info("Saved %s", args.screenshot)
        return 0

    run_viewer(renderer, model, textures, skybox, center, fit_scale)
    return 0


if __name__ == "__main__":
    sys.exit(main())
